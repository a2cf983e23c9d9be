"""Explicit session context for every store-touching operation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from rtp_portal.errors import NotAuthenticatedError, SessionEndedError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from rtp_portal.adapters.base import IdentityProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionContext:
    """Tracks the signed-in user and guards in-flight operations.

    Every identity change (sign-in, sign-out, user switch) starts a new
    epoch. An operation started in one epoch and finished in another is
    abandoned: its result is dropped and SessionEndedError is raised.
    """

    def __init__(self, identity: IdentityProvider) -> None:
        self.identity = identity
        self._epoch = 0
        self._listeners: list[Callable[[str | None], None]] = []
        self._unsubscribe = identity.subscribe(self._on_identity_change)

    @property
    def user_id(self) -> str | None:
        return self.identity.current_user_id()

    def require_user(self) -> str:
        """Return the current user id or raise NotAuthenticatedError."""
        user_id = self.user_id
        if not user_id:
            msg = "Please sign in to continue"
            raise NotAuthenticatedError(msg)
        return user_id

    def on_change(self, callback: Callable[[str | None], None]) -> Callable[[], None]:
        """Subscribe to identity changes so views can re-fetch or redirect."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def run(self, operation: Callable[[str], Awaitable[T]]) -> T:
        """Run ``operation(user_id)``, discarding its result if the session changed."""
        user_id = self.require_user()
        epoch = self._epoch
        result = await operation(user_id)
        if epoch != self._epoch:
            logger.warning("Discarding result for ended session of %s", user_id)
            msg = "Session ended before the operation completed"
            raise SessionEndedError(msg)
        return result

    def close(self) -> None:
        """Stop listening to the identity provider."""
        self._unsubscribe()
        self._listeners.clear()

    def _on_identity_change(self, user_id: str | None) -> None:
        self._epoch += 1
        logger.debug("Identity changed (signed in: %s)", user_id is not None)
        for listener in list(self._listeners):
            listener(user_id)
