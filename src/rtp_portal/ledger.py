"""Payment request ledger: creation and status lifecycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from rtp_portal.errors import InvalidTransitionError, StoreError
from rtp_portal.models import NewPaymentRequest, PaymentRequest, PaymentStatus
from rtp_portal.store import PAYMENTS, RecordQuery

if TYPE_CHECKING:
    from datetime import date
    from decimal import Decimal

    from rtp_portal.adapters.base import RecordStore
    from rtp_portal.session import SessionContext

logger = logging.getLogger(__name__)

# Closed state machine: pending is the only state with outgoing edges.
PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.PAID, PaymentStatus.CANCELLED, PaymentStatus.EXPIRED}
    ),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.EXPIRED: frozenset(),
}


def check_payment_transition(current: PaymentStatus, new: PaymentStatus) -> bool:
    """Validate ``current -> new``.

    Returns False when the move is a no-op (the same terminal status
    applied again) and True when the status actually changes. Raises
    InvalidTransitionError for anything else.
    """
    if current == new and current.is_terminal:
        return False
    if new not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, new.value)
    return True


class PaymentLedger:
    """Creates payment requests and moves them through their lifecycle."""

    def __init__(self, session: SessionContext, store: RecordStore) -> None:
        self.session = session
        self.store = store

    async def create_request(
        self,
        amount: Decimal | float | str,
        description: str,
        invoice_number: str | None = None,
        due_date: date | str | None = None,
    ) -> PaymentRequest:
        """Insert a new request in ``pending`` status and return it."""
        self.session.require_user()
        data = NewPaymentRequest.parse(
            amount=amount,
            description=description,
            invoice_number=invoice_number,
            due_date=due_date,
        )

        async def insert(user_id: str) -> PaymentRequest:
            row = await self.store.insert(
                PAYMENTS,
                {
                    "user_id": user_id,
                    "amount": data.amount,
                    "description": data.description,
                    "invoice_number": data.invoice_number,
                    "due_date": data.due_date,
                    "status": PaymentStatus.PENDING.value,
                },
            )
            return PaymentRequest.model_validate(row)

        request = await self.session.run(insert)
        logger.info("Created payment request %s for %s", request.id, request.amount)
        return request

    def list_requests(
        self, limit: int | None = None
    ) -> RecordQuery[PaymentRequest]:
        """Requests of the signed-in user, newest first."""

        async def fetch(user_id: str) -> list[dict[str, object]]:
            return await self.store.select(
                PAYMENTS,
                filters={"user_id": user_id},
                order_by="created_at",
                descending=True,
                limit=limit,
            )

        return RecordQuery(lambda: self.session.run(fetch), PaymentRequest)

    async def get_request(self, request_id: UUID | str) -> PaymentRequest | None:
        """Return one of the user's requests by id, or None."""
        self.session.require_user()
        try:
            UUID(str(request_id))
        except ValueError:
            logger.debug("Malformed payment request id %r", request_id)
            return None

        async def fetch(user_id: str) -> list[dict[str, object]]:
            return await self.store.select(
                PAYMENTS, filters={"id": request_id, "user_id": user_id}, limit=1
            )

        rows = await self.session.run(fetch)
        return PaymentRequest.model_validate(rows[0]) if rows else None

    async def transition(
        self, request: PaymentRequest, new_status: PaymentStatus | str
    ) -> PaymentRequest:
        """Apply a status change allowed by the state machine.

        Re-applying a terminal status is a no-op returning ``request``
        untouched. The write is conditional on the stored status still
        being the one observed on ``request``.
        """
        self.session.require_user()
        try:
            target = PaymentStatus(new_status)
        except ValueError as exc:
            raise InvalidTransitionError(request.status.value, str(new_status)) from exc

        try:
            changed = check_payment_transition(request.status, target)
        except InvalidTransitionError:
            logger.warning(
                "Rejected transition of %s from %s to %s",
                request.id,
                request.status,
                target,
            )
            raise
        if not changed:
            return request

        async def update(user_id: str) -> list[dict[str, object]]:
            return await self.store.update(
                PAYMENTS,
                filters={
                    "id": request.id,
                    "user_id": user_id,
                    "status": request.status.value,
                },
                changes={"status": target.value},
            )

        rows = await self.session.run(update)
        if rows:
            logger.info("Payment request %s is now %s", request.id, target)
            return PaymentRequest.model_validate(rows[0])
        return await self._reconcile(request, target)

    async def expire_overdue(self, today: date) -> list[PaymentRequest]:
        """Expire pending requests whose due date is before ``today``."""
        expired: list[PaymentRequest] = []
        async for request in self.list_requests():
            if (
                request.status is PaymentStatus.PENDING
                and request.due_date is not None
                and request.due_date < today
            ):
                try:
                    updated = await self.transition(request, PaymentStatus.EXPIRED)
                except InvalidTransitionError:
                    logger.warning(
                        "Skipping %s: status changed before it could expire", request.id
                    )
                    continue
                if updated.status is PaymentStatus.EXPIRED:
                    expired.append(updated)
        return expired

    async def _reconcile(
        self, request: PaymentRequest, target: PaymentStatus
    ) -> PaymentRequest:
        # The stored row moved on since ``request`` was read.
        current = await self.get_request(request.id)
        if current is None:
            msg = f"Payment request {request.id} not found"
            raise StoreError(msg)
        if check_payment_transition(current.status, target):
            raise InvalidTransitionError(request.status.value, target.value)
        return current
