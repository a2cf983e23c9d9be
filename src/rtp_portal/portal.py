"""Wiring of the portal services around one session and one store."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from rtp_portal.config import get_recent_limit
from rtp_portal.ledger import PaymentLedger
from rtp_portal.models import PaymentRequest, PaymentStats, Profile
from rtp_portal.receipts import ReceiptStore
from rtp_portal.recipients import RecipientDirectory
from rtp_portal.stats import StatisticsAggregator
from rtp_portal.store import PROFILES

if TYPE_CHECKING:
    from rtp_portal.adapters.base import RecordStore
    from rtp_portal.session import SessionContext

logger = logging.getLogger(__name__)


class Dashboard(BaseModel):
    """Overview for the signed-in user."""

    profile: Profile | None
    recent_requests: list[PaymentRequest] = Field(default_factory=list)
    stats: PaymentStats


class Portal:
    """All portal services sharing a session context and a record store."""

    def __init__(self, session: SessionContext, store: RecordStore) -> None:
        self.session = session
        self.store = store
        self.ledger = PaymentLedger(session, store)
        self.recipients = RecipientDirectory(session, store)
        self.receipts = ReceiptStore(session, store)
        self.stats = StatisticsAggregator(self.ledger, self.recipients)

    async def get_profile(self) -> Profile | None:
        """The signed-in user's profile, or None when none exists yet."""

        async def fetch(user_id: str) -> list[dict[str, object]]:
            return await self.store.select(PROFILES, filters={"id": user_id}, limit=1)

        rows = await self.session.run(fetch)
        if not rows:
            logger.warning("No profile for the signed-in user")
            return None
        return Profile.model_validate(rows[0])

    async def load_dashboard(self, recent_limit: int | None = None) -> Dashboard:
        """Gather profile, most recent requests and stats concurrently."""
        self.session.require_user()
        limit = recent_limit if recent_limit is not None else get_recent_limit()
        profile, recent, stats = await asyncio.gather(
            self.get_profile(),
            self.ledger.list_requests(limit=limit).all(),
            self.stats.snapshot(),
        )
        return Dashboard(profile=profile, recent_requests=recent, stats=stats)
