"""Table names and lazy, restartable queries over the record store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)

PROFILES = "profiles"
PAYMENTS = "payments"
RECIPIENTS = "verified_recipients"
RECEIPTS = "receipts"

M = TypeVar("M", bound=BaseModel)


class RecordQuery(Generic[M]):
    """A finite sequence of records that is only read when iterated.

    Each iteration, or call to ``all()``, issues a fresh read, so the same
    query can be replayed after a write to observe it. An empty result is
    a valid sequence; read failures propagate to the caller.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[list[dict[str, Any]]]],
        model: type[M],
    ) -> None:
        self._fetch = fetch
        self._model = model

    async def all(self) -> list[M]:
        rows = await self._fetch()
        logger.debug("Fetched %d %s rows", len(rows), self._model.__name__)
        return [self._model.model_validate(row) for row in rows]

    async def __aiter__(self) -> AsyncIterator[M]:
        for record in await self.all():
            yield record
