"""Tests for rtp_portal.cli."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner, Result

from rtp_portal.adapters.memory import MemoryStore
from rtp_portal.cli import cli
from rtp_portal.store import PAYMENTS, RECEIPTS

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

USER = "u-cli"


@pytest.fixture
def memory_store(monkeypatch: pytest.MonkeyPatch) -> MemoryStore:
    """Route the CLI to an in-memory store instead of PostgreSQL."""
    store = MemoryStore()

    @asynccontextmanager
    async def open_store() -> AsyncIterator[MemoryStore]:
        yield store

    monkeypatch.setattr("rtp_portal.cli._open_store", open_store)
    return store


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _invoke(runner: CliRunner, *args: str) -> Result:
    return runner.invoke(cli, ["--user", USER, *args])


class TestCliRequests:
    """Tests for the request commands."""

    def test_create_and_list(self, runner: CliRunner, memory_store: MemoryStore) -> None:
        created = _invoke(
            runner,
            "request", "create",
            "--amount", "100.00",
            "--description", "Consulting",
            "--invoice", "INV-1",
            "--due", "2024-02-01",
        )  # fmt: skip
        assert created.exit_code == 0, created.output
        assert "Payment request created" in created.output

        listed = _invoke(runner, "request", "list")
        assert listed.exit_code == 0
        assert "$100.00" in listed.output
        assert "pending" in listed.output
        assert "[INV-1]" in listed.output

    def test_empty_list(self, runner: CliRunner, memory_store: MemoryStore) -> None:
        result = _invoke(runner, "request", "list")
        assert result.exit_code == 0
        assert "No payment requests yet" in result.output

    def test_invalid_amount_reports_reason(
        self, runner: CliRunner, memory_store: MemoryStore
    ) -> None:
        result = _invoke(
            runner, "request", "create", "--amount", "0", "--description", "x"
        )
        assert result.exit_code == 1
        assert "amount" in result.output
        assert memory_store.tables.get(PAYMENTS, []) == []

    def test_set_status(self, runner: CliRunner, memory_store: MemoryStore) -> None:
        _invoke(runner, "request", "create", "--amount", "5", "--description", "x")
        request_id = memory_store.tables[PAYMENTS][0]["id"]

        paid = _invoke(runner, "request", "set-status", request_id, "paid")
        again = _invoke(runner, "request", "set-status", request_id, "cancelled")

        assert paid.exit_code == 0
        assert "is paid" in paid.output
        assert again.exit_code == 1
        assert "Cannot move from 'paid' to 'cancelled'" in again.output

    def test_set_status_unknown_request(
        self, runner: CliRunner, memory_store: MemoryStore
    ) -> None:
        result = _invoke(runner, "request", "set-status", "nope", "paid")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_expire(self, runner: CliRunner, memory_store: MemoryStore) -> None:
        _invoke(
            runner,
            "request", "create",
            "--amount", "5",
            "--description", "Late",
            "--due", "2024-01-01",
        )  # fmt: skip

        result = _invoke(runner, "request", "expire", "--today", "2024-02-01")

        assert result.exit_code == 0
        assert "Expired 1 payment request(s)" in result.output
        assert memory_store.tables[PAYMENTS][0]["status"] == "expired"

    def test_requires_user(self, runner: CliRunner, memory_store: MemoryStore) -> None:
        result = runner.invoke(cli, ["request", "list"], env={"RTP_USER_ID": ""})
        assert result.exit_code == 1
        assert "sign in" in result.output


class TestCliRecipientsAndStats:
    """Tests for recipient, stats and dashboard commands."""

    def test_add_and_list_recipient(
        self, runner: CliRunner, memory_store: MemoryStore
    ) -> None:
        added = _invoke(runner, "recipient", "add", "Jane Doe", "jane@x.com")
        listed = _invoke(runner, "recipient", "list")

        assert added.exit_code == 0
        assert "verified" in added.output
        assert "Jane Doe  <jane@x.com>" in listed.output

    def test_bad_email(self, runner: CliRunner, memory_store: MemoryStore) -> None:
        result = _invoke(runner, "recipient", "add", "Jane", "jane-at-x")
        assert result.exit_code == 1
        assert "recipient_email" in result.output

    def test_stats(self, runner: CliRunner, memory_store: MemoryStore) -> None:
        _invoke(runner, "request", "create", "--amount", "50", "--description", "x")
        _invoke(runner, "recipient", "add", "Jane Doe", "jane@x.com")

        result = _invoke(runner, "stats")

        assert result.exit_code == 0
        assert "Total Received: $0.00" in result.output
        assert "Pending Payments: $50.00" in result.output
        assert "Verified Recipients: 1" in result.output

    def test_dashboard(self, runner: CliRunner, memory_store: MemoryStore) -> None:
        result = _invoke(runner, "dashboard")

        assert result.exit_code == 0
        assert "Welcome back!" in result.output
        assert "Funds Available: $0.00" in result.output
        assert "No payment requests yet" in result.output


class TestCliReceipts:
    """Tests for receipt commands."""

    @pytest.fixture
    def with_receipt(self, memory_store: MemoryStore) -> MemoryStore:
        memory_store.tables[RECEIPTS] = [
            {
                "id": "rcpt-1",
                "user_id": USER,
                "receipt_number": "R-1",
                "amount": Decimal("42.5"),
                "transaction_date": datetime(2024, 1, 5, tzinfo=UTC),
                "payment_method": None,
                "notes": None,
            }
        ]
        return memory_store

    def test_list(self, runner: CliRunner, with_receipt: MemoryStore) -> None:
        result = _invoke(runner, "receipt", "list")
        assert "R-1  1/5/2024  $42.50" in result.output

    def test_show(self, runner: CliRunner, with_receipt: MemoryStore) -> None:
        result = _invoke(runner, "receipt", "show", "R-1")
        assert result.exit_code == 0
        assert "Payment Method: N/A" in result.output

    def test_export(
        self, runner: CliRunner, with_receipt: MemoryStore, tmp_path: Path
    ) -> None:
        result = _invoke(runner, "receipt", "export", "R-1", "--dir", str(tmp_path))

        assert result.exit_code == 0, result.output
        exported = tmp_path / "receipt-R-1.txt"
        assert "Amount: $42.50" in exported.read_text(encoding="utf-8")

    def test_export_missing(
        self, runner: CliRunner, with_receipt: MemoryStore, tmp_path: Path
    ) -> None:
        result = _invoke(runner, "receipt", "export", "R-2", "--dir", str(tmp_path))
        assert result.exit_code == 1
        assert "not found" in result.output
