"""Summary figures derived from a user's requests and recipients."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from rtp_portal.models import (
    PaymentRequest,
    PaymentStats,
    PaymentStatus,
    Recipient,
    VerificationStatus,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rtp_portal.ledger import PaymentLedger
    from rtp_portal.recipients import RecipientDirectory

logger = logging.getLogger(__name__)


def status_totals(requests: Iterable[PaymentRequest]) -> dict[PaymentStatus, Decimal]:
    """Sum request amounts per status; every status is present, zero if unused."""
    totals = {status: Decimal("0") for status in PaymentStatus}
    for request in requests:
        totals[request.status] += request.amount
    return totals


def compute_stats(
    requests: Iterable[PaymentRequest], recipients: Iterable[Recipient]
) -> PaymentStats:
    """Reduce a snapshot of requests and recipients to dashboard figures.

    Only paid requests count as received and only pending ones as
    outstanding; cancelled and expired amounts are left out of both.
    """
    totals = status_totals(requests)
    verified = sum(
        1 for r in recipients if r.verification_status is VerificationStatus.VERIFIED
    )
    return PaymentStats(
        total_received=totals[PaymentStatus.PAID],
        pending_amount=totals[PaymentStatus.PENDING],
        verified_recipient_count=verified,
    )


class StatisticsAggregator:
    """Reads both collections, then derives the figures.

    Nothing is computed until both reads have completed; a failed read
    propagates instead of being counted as zero.
    """

    def __init__(self, ledger: PaymentLedger, directory: RecipientDirectory) -> None:
        self.ledger = ledger
        self.directory = directory

    async def snapshot(self) -> PaymentStats:
        requests, recipients = await asyncio.gather(
            self.ledger.list_requests().all(),
            self.directory.list_recipients().all(),
        )
        stats = compute_stats(requests, recipients)
        logger.debug(
            "Stats over %d requests and %d recipients", len(requests), len(recipients)
        )
        return stats
