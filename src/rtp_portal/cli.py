"""CLI entry point for the payment-request portal."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import click

from rtp_portal.adapters.memory import LocalIdentity
from rtp_portal.adapters.postgres import PostgresStore
from rtp_portal.config import get_log_level, get_receipt_dir
from rtp_portal.db import get_connection
from rtp_portal.errors import PortalError
from rtp_portal.models import PaymentStatus
from rtp_portal.portal import Portal
from rtp_portal.receipts import (
    export_receipt,
    format_date,
    format_money,
    format_receipt_text,
)
from rtp_portal.session import SessionContext

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from rtp_portal.adapters.base import RecordStore
    from rtp_portal.models import PaymentRequest

T = TypeVar("T")


@asynccontextmanager
async def _open_store() -> AsyncIterator[RecordStore]:
    conn = await get_connection()
    try:
        yield PostgresStore(conn)
    finally:
        await conn.close()


def _run(user_id: str | None, action: Callable[[Portal], Awaitable[T]]) -> T:
    """Run ``action`` against a portal for ``user_id``, mapping portal errors."""

    async def main() -> T:
        session = SessionContext(LocalIdentity(user_id))
        try:
            async with _open_store() as store:
                return await action(Portal(session, store))
        finally:
            session.close()

    try:
        return asyncio.run(main())
    except (PortalError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _request_line(request: PaymentRequest) -> str:
    invoice = f" [{request.invoice_number}]" if request.invoice_number else ""
    return (
        f"{request.id}  {format_date(request.created_at)}  "
        f"{format_money(request.amount):>12}  {request.status.value:<9}  "
        f"{request.description}{invoice}"
    )


@click.group()
@click.option("--user", "user_id", envvar="RTP_USER_ID", help="Signed-in user id.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, user_id: str | None, verbose: bool) -> None:
    """Request-to-pay portal: track payment requests and receipts."""
    logging.basicConfig(level=logging.DEBUG if verbose else get_log_level())
    ctx.obj = user_id


@cli.group()
def request() -> None:
    """Create and track payment requests."""


@request.command("create")
@click.option("--amount", required=True, help="Amount in dollars, e.g. 100.00.")
@click.option("--description", required=True)
@click.option("--invoice", "invoice_number", default=None, help="Invoice number.")
@click.option("--due", "due_date", type=click.DateTime(["%Y-%m-%d"]), default=None)
@click.pass_obj
def create_request(
    user_id: str | None,
    amount: str,
    description: str,
    invoice_number: str | None,
    due_date: datetime | None,
) -> None:
    """Send a new payment request."""
    due = due_date.date() if due_date is not None else None
    created = _run(
        user_id,
        lambda portal: portal.ledger.create_request(
            amount, description, invoice_number, due
        ),
    )
    click.echo(f"Payment request created: {created.id}")


@request.command("list")
@click.option("--limit", type=click.IntRange(min=1), default=None)
@click.pass_obj
def list_requests(user_id: str | None, limit: int | None) -> None:
    """List payment requests, newest first."""
    requests = _run(user_id, lambda portal: portal.ledger.list_requests(limit).all())
    if not requests:
        click.echo("No payment requests yet")
    for item in requests:
        click.echo(_request_line(item))


@request.command("show")
@click.argument("request_id")
@click.pass_obj
def show_request(user_id: str | None, request_id: str) -> None:
    """Show a single payment request."""
    found = _run(user_id, lambda portal: portal.ledger.get_request(request_id))
    if found is None:
        raise click.ClickException(f"Payment request {request_id} not found")
    click.echo(_request_line(found))
    if found.due_date is not None:
        click.echo(f"Due: {format_date(found.due_date)}")


@request.command("set-status")
@click.argument("request_id")
@click.argument("status", type=click.Choice([s.value for s in PaymentStatus]))
@click.pass_obj
def set_status(user_id: str | None, request_id: str, status: str) -> None:
    """Move a payment request to a new status."""

    async def action(portal: Portal) -> PaymentRequest:
        found = await portal.ledger.get_request(request_id)
        if found is None:
            raise click.ClickException(f"Payment request {request_id} not found")
        return await portal.ledger.transition(found, status)

    updated = _run(user_id, action)
    click.echo(f"Payment request {updated.id} is {updated.status.value}")


@request.command("expire")
@click.option("--today", type=click.DateTime(["%Y-%m-%d"]), default=None)
@click.pass_obj
def expire_requests(user_id: str | None, today: datetime | None) -> None:
    """Expire pending requests past their due date."""
    cutoff = today.date() if today is not None else date.today()
    expired = _run(user_id, lambda portal: portal.ledger.expire_overdue(cutoff))
    click.echo(f"Expired {len(expired)} payment request(s)")


@cli.group()
def recipient() -> None:
    """Manage verified recipients."""


@recipient.command("add")
@click.argument("name")
@click.argument("email")
@click.option("--phone", default=None)
@click.pass_obj
def add_recipient(
    user_id: str | None, name: str, email: str, phone: str | None
) -> None:
    """Add a recipient to the trust list."""
    added = _run(
        user_id, lambda portal: portal.recipients.add_recipient(name, email, phone)
    )
    click.echo(f"Recipient added: {added.recipient_name} ({added.verification_status})")


@recipient.command("list")
@click.pass_obj
def list_recipients(user_id: str | None) -> None:
    """List recipients, newest first."""
    recipients = _run(
        user_id, lambda portal: portal.recipients.list_recipients().all()
    )
    if not recipients:
        click.echo("No recipients yet")
    for item in recipients:
        phone = f"  {item.recipient_phone}" if item.recipient_phone else ""
        click.echo(
            f"{item.recipient_name}  <{item.recipient_email}>{phone}"
            f"  {item.verification_status.value}"
        )


@cli.group()
def receipt() -> None:
    """View and download receipts."""


@receipt.command("list")
@click.pass_obj
def list_receipts(user_id: str | None) -> None:
    """List receipts, most recent transaction first."""
    receipts = _run(user_id, lambda portal: portal.receipts.list_receipts().all())
    if not receipts:
        click.echo("No receipts yet")
    for item in receipts:
        click.echo(
            f"{item.receipt_number}  {format_date(item.transaction_date)}  "
            f"{format_money(item.amount)}"
        )


@receipt.command("show")
@click.argument("receipt_number")
@click.pass_obj
def show_receipt(user_id: str | None, receipt_number: str) -> None:
    """Print a receipt."""
    found = _run(user_id, lambda portal: portal.receipts.get_receipt(receipt_number))
    if found is None:
        raise click.ClickException(f"Receipt {receipt_number} not found")
    click.echo(format_receipt_text(found))


@receipt.command("export")
@click.argument("receipt_number")
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Target directory (default: RTP_RECEIPT_DIR).",
)
@click.pass_obj
def export(user_id: str | None, receipt_number: str, directory: Path | None) -> None:
    """Download a receipt as a text file."""
    found = _run(user_id, lambda portal: portal.receipts.get_receipt(receipt_number))
    if found is None:
        raise click.ClickException(f"Receipt {receipt_number} not found")
    path = export_receipt(found, directory or get_receipt_dir())
    click.echo(f"Receipt downloaded: {path}")


@cli.command()
@click.pass_obj
def stats(user_id: str | None) -> None:
    """Show payment totals."""
    figures = _run(user_id, lambda portal: portal.stats.snapshot())
    click.echo(f"Total Received: {format_money(figures.total_received)}")
    click.echo(f"Pending Payments: {format_money(figures.pending_amount)}")
    click.echo(f"Verified Recipients: {figures.verified_recipient_count}")


@cli.command()
@click.pass_obj
def dashboard(user_id: str | None) -> None:
    """Show profile, totals and recent requests."""
    board = _run(user_id, lambda portal: portal.load_dashboard())
    name = board.profile.full_name if board.profile else None
    click.echo(f"Welcome back{', ' + name if name else ''}!")
    funds = board.profile.funds_available if board.profile else 0
    verified = " (verified)" if board.profile and board.profile.is_verified else ""
    click.echo(f"Funds Available: {format_money(funds)}{verified}")
    click.echo(f"Total Received: {format_money(board.stats.total_received)}")
    click.echo(f"Pending Payments: {format_money(board.stats.pending_amount)}")
    click.echo(f"Verified Recipients: {board.stats.verified_recipient_count}")
    click.echo("")
    click.echo("Recent Payment Requests")
    if not board.recent_requests:
        click.echo("No payment requests yet")
    for item in board.recent_requests:
        click.echo(_request_line(item))
