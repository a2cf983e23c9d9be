"""Read-only receipt listing and plain-text receipt export."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from slugify import slugify

from rtp_portal.models import Receipt
from rtp_portal.store import RECEIPTS, RecordQuery

if TYPE_CHECKING:
    from datetime import date, datetime
    from pathlib import Path

    from rtp_portal.adapters.base import RecordStore
    from rtp_portal.session import SessionContext

logger = logging.getLogger(__name__)

RECEIPT_TITLE = "RTP PORTAL - OFFICIAL RECEIPT"
RULE = "=" * 32
CLOSING = "Thank you for your payment!"
MISSING = "N/A"


def format_money(amount: Decimal | float | int) -> str:
    """Render an amount as dollars with exactly two decimals, e.g. ``$42.50``."""
    cents = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"${cents}"


def format_date(value: date | datetime) -> str:
    """US short date without zero padding, e.g. ``1/5/2024``."""
    return f"{value.month}/{value.day}/{value.year}"


def format_receipt_text(receipt: Receipt) -> str:
    """Render a receipt as a flat text document.

    Pure: the same receipt always yields the same text. The notes line
    is present only when the receipt has notes.
    """
    lines = [
        RECEIPT_TITLE,
        RULE,
        "",
        f"Receipt #: {receipt.receipt_number}",
        f"Date: {format_date(receipt.transaction_date)}",
        f"Amount: {format_money(receipt.amount)}",
        f"Payment Method: {receipt.payment_method or MISSING}",
    ]
    if receipt.notes:
        lines += ["", f"Notes: {receipt.notes}"]
    lines += ["", RULE, CLOSING]
    return "\n".join(lines)


# Path separators and other unsafe characters become "-"; "_" and "." are kept,
# except leading dots.
_UNSAFE_FILENAME_CHARS = r"[^-a-zA-Z0-9_.]+"


def receipt_filename(receipt: Receipt) -> str:
    """Return ``receipt-<receipt number>.txt`` with a filesystem-safe number."""
    number = (
        slugify(
            receipt.receipt_number,
            lowercase=False,
            regex_pattern=_UNSAFE_FILENAME_CHARS,
        ).lstrip(".-")
        or "unnumbered"
    )
    return f"receipt-{number}.txt"


def export_receipt(receipt: Receipt, directory: Path) -> Path:
    """Write the receipt text into ``directory`` and return the file path.

    Exporting the same receipt again rewrites its file. When a different
    receipt already occupies the name, a numeric suffix is appended.
    """
    directory.mkdir(parents=True, exist_ok=True)
    content = format_receipt_text(receipt) + "\n"
    filename = receipt_filename(receipt)
    stem = filename.removesuffix(".txt")
    path = directory / filename

    counter = 1
    while path.exists() and path.read_text(encoding="utf-8") != content:
        counter += 1
        path = directory / f"{stem}_{counter}.txt"

    path.write_text(content, encoding="utf-8")
    logger.info("Exported receipt %s to %s", receipt.receipt_number, path)
    return path


class ReceiptStore:
    """Receipts of the signed-in user. Receipts are created elsewhere."""

    def __init__(self, session: SessionContext, store: RecordStore) -> None:
        self.session = session
        self.store = store

    def list_receipts(self) -> RecordQuery[Receipt]:
        """Receipts newest transaction first."""

        async def fetch(user_id: str) -> list[dict[str, object]]:
            return await self.store.select(
                RECEIPTS,
                filters={"user_id": user_id},
                order_by="transaction_date",
                descending=True,
            )

        return RecordQuery(lambda: self.session.run(fetch), Receipt)

    async def get_receipt(self, receipt_number: str) -> Receipt | None:
        """Look up one of the user's receipts by its receipt number."""

        async def fetch(user_id: str) -> list[dict[str, object]]:
            return await self.store.select(
                RECEIPTS,
                filters={"user_id": user_id, "receipt_number": receipt_number},
                limit=1,
            )

        rows = await self.session.run(fetch)
        return Receipt.model_validate(rows[0]) if rows else None
