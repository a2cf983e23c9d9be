"""In-process identity provider and record store."""

from __future__ import annotations

import copy
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

logger = logging.getLogger(__name__)


class LocalIdentity:
    """Identity provider holding a single user id in memory."""

    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = user_id
        self._listeners: list[Callable[[str | None], None]] = []

    def current_user_id(self) -> str | None:
        return self._user_id

    def subscribe(self, callback: Callable[[str | None], None]) -> Callable[[], None]:
        """Register a callback fired on sign-in/sign-out; returns an unsubscriber."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def sign_in(self, user_id: str) -> None:
        self._user_id = user_id
        self._notify()

    def sign_out(self) -> None:
        self._user_id = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._user_id)


class MemoryStore:
    """RecordStore backed by plain dictionaries.

    Inserted rows get an ``id`` and ``created_at`` when the payload does not
    carry them, the same defaults the database tables apply.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, object],
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        indexed = [
            (position, row)
            for position, row in enumerate(self.tables.get(table, []))
            if _matches(row, filters)
        ]
        if order_by is not None:
            # Break ties by insertion position.
            indexed.sort(
                key=lambda item: (item[1][order_by], item[0]), reverse=descending
            )
        rows = [row for _position, row in indexed]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def insert(self, table: str, payload: Mapping[str, object]) -> dict[str, Any]:
        row = dict(payload)
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", datetime.now(tz=UTC))
        self.tables.setdefault(table, []).append(row)
        logger.debug("Inserted row %s into %s", row["id"], table)
        return copy.deepcopy(row)

    async def update(
        self,
        table: str,
        *,
        filters: Mapping[str, object],
        changes: Mapping[str, object],
    ) -> list[dict[str, Any]]:
        updated: list[dict[str, Any]] = []
        for row in self.tables.get(table, []):
            if _matches(row, filters):
                row.update(changes)
                updated.append(copy.deepcopy(row))
        return updated


def _matches(row: Mapping[str, object], filters: Mapping[str, object]) -> bool:
    return all(row.get(key) == value for key, value in filters.items())
