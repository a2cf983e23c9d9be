"""Error taxonomy for the payment-request portal."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pydantic


class PortalError(Exception):
    """Base class for every error raised by the portal core."""


class ValidationError(PortalError, ValueError):
    """Input was malformed or out of range; nothing reached the store."""

    def __init__(self, message: str, fields: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.fields = fields

    @classmethod
    def from_pydantic(cls, exc: pydantic.ValidationError) -> ValidationError:
        """Build from a pydantic error, keeping the names of failing fields."""
        fields: list[str] = []
        parts: list[str] = []
        for err in exc.errors():
            name = ".".join(str(loc) for loc in err["loc"]) or "input"
            fields.append(name)
            parts.append(f"{name}: {err['msg']}")
        return cls("; ".join(parts), tuple(fields))


class InvalidTransitionError(PortalError):
    """A status change not allowed by the state machine."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class NotAuthenticatedError(PortalError):
    """No active session for an operation that needs one."""


class SessionEndedError(NotAuthenticatedError):
    """The session changed while an operation was in flight."""


class StoreError(PortalError):
    """The record store failed or returned an error payload."""
