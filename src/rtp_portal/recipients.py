"""Recipient directory: the user's self-attested list of trusted payees."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from rtp_portal.errors import InvalidTransitionError
from rtp_portal.models import NewRecipient, Recipient, VerificationStatus
from rtp_portal.store import RECIPIENTS, RecordQuery

if TYPE_CHECKING:
    from collections.abc import Callable

    from rtp_portal.adapters.base import RecordStore
    from rtp_portal.session import SessionContext

logger = logging.getLogger(__name__)

# pending -> verified/rejected belongs to an external review process.
# add_recipient only ever produces verified records.
RECIPIENT_TRANSITIONS: dict[VerificationStatus, frozenset[VerificationStatus]] = {
    VerificationStatus.PENDING: frozenset(
        {VerificationStatus.VERIFIED, VerificationStatus.REJECTED}
    ),
    VerificationStatus.VERIFIED: frozenset(),
    VerificationStatus.REJECTED: frozenset(),
}


def check_recipient_transition(
    current: VerificationStatus, new: VerificationStatus
) -> bool:
    """Validate a verification status change; same rules as payment requests."""
    if current == new and current.is_terminal:
        return False
    if new not in RECIPIENT_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, new.value)
    return True


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class RecipientDirectory:
    """Adds and lists recipients for the signed-in user."""

    def __init__(
        self,
        session: SessionContext,
        store: RecordStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.session = session
        self.store = store
        self.clock = clock

    async def add_recipient(
        self, name: str, email: str, phone: str | None = None
    ) -> Recipient:
        """Create a recipient, verified at creation time."""
        self.session.require_user()
        data = NewRecipient.parse(
            recipient_name=name, recipient_email=email, recipient_phone=phone
        )
        now = self.clock()

        async def insert(user_id: str) -> Recipient:
            row = await self.store.insert(
                RECIPIENTS,
                {
                    "user_id": user_id,
                    "recipient_name": data.recipient_name,
                    "recipient_email": data.recipient_email,
                    "recipient_phone": data.recipient_phone,
                    "verification_status": VerificationStatus.VERIFIED.value,
                    "created_at": now,
                    "verified_at": now,
                },
            )
            return Recipient.model_validate(row)

        recipient = await self.session.run(insert)
        logger.info("Added recipient %s", recipient.id)
        return recipient

    def list_recipients(self) -> RecordQuery[Recipient]:
        """Recipients of the signed-in user, newest first."""

        async def fetch(user_id: str) -> list[dict[str, object]]:
            return await self.store.select(
                RECIPIENTS,
                filters={"user_id": user_id},
                order_by="created_at",
                descending=True,
            )

        return RecordQuery(lambda: self.session.run(fetch), Recipient)
