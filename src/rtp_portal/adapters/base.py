"""Collaborator protocols: identity provider and record store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


@runtime_checkable
class IdentityProvider(Protocol):
    """Supplies the signed-in user and notifies on sign-in/sign-out."""

    def current_user_id(self) -> str | None: ...

    def subscribe(
        self, callback: Callable[[str | None], None]
    ) -> Callable[[], None]: ...


@runtime_checkable
class RecordStore(Protocol):
    """Filtered reads and writes against named tables."""

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, object],
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    async def insert(
        self, table: str, payload: Mapping[str, object]
    ) -> dict[str, Any]: ...

    async def update(
        self,
        table: str,
        *,
        filters: Mapping[str, object],
        changes: Mapping[str, object],
    ) -> list[dict[str, Any]]: ...
