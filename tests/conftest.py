"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from rtp_portal.adapters.memory import LocalIdentity, MemoryStore
from rtp_portal.models import Receipt
from rtp_portal.portal import Portal
from rtp_portal.session import SessionContext

USER_ID = "3f1c2b9e-0d4a-4a57-9a7e-5c0d2e1f8a11"


@pytest.fixture
def identity() -> LocalIdentity:
    """Provide an identity provider with a signed-in user."""
    return LocalIdentity(USER_ID)


@pytest.fixture
def session(identity: LocalIdentity) -> SessionContext:
    """Provide a session context over the test identity."""
    return SessionContext(identity)


@pytest.fixture
def store() -> MemoryStore:
    """Provide an empty in-memory record store."""
    return MemoryStore()


@pytest.fixture
def portal(session: SessionContext, store: MemoryStore) -> Portal:
    """Provide portal services wired to the test session and store."""
    return Portal(session, store)


@pytest.fixture
def sample_receipt() -> Receipt:
    """Provide a receipt with no payment method and no notes."""
    return Receipt(
        id="rcpt-1",
        user_id=USER_ID,
        receipt_number="R-1",
        amount=Decimal("42.5"),
        transaction_date=datetime(2024, 1, 5, 14, 30, tzinfo=UTC),
    )
