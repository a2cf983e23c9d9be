"""Tests for rtp_portal.store and the in-memory record store."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from rtp_portal.adapters.base import RecordStore
from rtp_portal.adapters.memory import MemoryStore
from rtp_portal.models import Recipient
from rtp_portal.store import RecordQuery


class TestMemoryStore:
    """Tests for MemoryStore."""

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MemoryStore(), RecordStore)

    @pytest.mark.asyncio
    async def test_insert_fills_defaults(self) -> None:
        store = MemoryStore()
        row = await store.insert("payments", {"user_id": "u-1"})

        assert isinstance(row["id"], str)
        assert row["created_at"].tzinfo is not None

    @pytest.mark.asyncio
    async def test_insert_keeps_given_values(self) -> None:
        store = MemoryStore()
        when = datetime(2024, 1, 1, tzinfo=UTC)
        row = await store.insert("t", {"id": "fixed", "created_at": when})

        assert row["id"] == "fixed"
        assert row["created_at"] == when

    @pytest.mark.asyncio
    async def test_select_filters_orders_and_limits(self) -> None:
        store = MemoryStore()
        for n in (2, 5, 1, 4):
            await store.insert("t", {"owner": "a", "n": n})
        await store.insert("t", {"owner": "b", "n": 9})

        rows = await store.select(
            "t", filters={"owner": "a"}, order_by="n", descending=True, limit=3
        )

        assert [r["n"] for r in rows] == [5, 4, 2]

    @pytest.mark.asyncio
    async def test_select_ascending(self) -> None:
        store = MemoryStore()
        for n in (3, 1, 2):
            await store.insert("t", {"n": n})

        rows = await store.select("t", filters={}, order_by="n", descending=False)

        assert [r["n"] for r in rows] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_select_unknown_table_is_empty(self) -> None:
        assert await MemoryStore().select("nothing", filters={}) == []

    @pytest.mark.asyncio
    async def test_returned_rows_are_copies(self) -> None:
        store = MemoryStore()
        row = await store.insert("t", {"n": 1})
        row["n"] = 99
        (selected,) = await store.select("t", filters={})
        selected["n"] = 42

        assert store.tables["t"][0]["n"] == 1

    @pytest.mark.asyncio
    async def test_update_matches_all_filters(self) -> None:
        store = MemoryStore()
        await store.insert("t", {"id": "a", "status": "pending"})
        await store.insert("t", {"id": "b", "status": "pending"})

        hit = await store.update(
            "t", filters={"id": "a", "status": "pending"}, changes={"status": "paid"}
        )
        miss = await store.update(
            "t", filters={"id": "a", "status": "pending"}, changes={"status": "expired"}
        )

        assert [r["status"] for r in hit] == ["paid"]
        assert miss == []
        assert [r["status"] for r in store.tables["t"]] == ["paid", "pending"]


class TestRecordQuery:
    """Tests for RecordQuery."""

    @pytest.mark.asyncio
    async def test_not_fetched_until_iterated(self) -> None:
        calls = 0

        async def fetch() -> list[dict[str, object]]:
            nonlocal calls
            calls += 1
            return []

        query = RecordQuery(fetch, Recipient)
        assert calls == 0

        assert [r async for r in query] == []
        assert await query.all() == []
        assert calls == 2

    @pytest.mark.asyncio
    async def test_rows_become_models(self) -> None:
        async def fetch() -> list[dict[str, object]]:
            return [
                {
                    "id": "r-1",
                    "user_id": "u-1",
                    "recipient_name": "Jane",
                    "recipient_email": "jane@x.com",
                    "verification_status": "verified",
                    "created_at": datetime(2024, 1, 1, tzinfo=UTC),
                }
            ]

        (recipient,) = await RecordQuery(fetch, Recipient).all()

        assert isinstance(recipient, Recipient)
        assert recipient.recipient_name == "Jane"
