"""Configuration via environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def get_database_url() -> str:
    """Return the DATABASE_URL from the environment."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        msg = "DATABASE_URL environment variable is required"
        raise ValueError(msg)
    return url


def get_receipt_dir() -> Path:
    """Return the RTP_RECEIPT_DIR for exported receipts, defaulting to ./receipts.

    Always resolves to an absolute path.
    """
    return Path(os.environ.get("RTP_RECEIPT_DIR", "./receipts")).resolve()


def get_recent_limit() -> int:
    """Return how many requests the dashboard lists (RTP_RECENT_LIMIT, default 5)."""
    raw = os.environ.get("RTP_RECENT_LIMIT", "5")
    try:
        limit = int(raw)
    except ValueError:
        limit = 0
    if limit < 1:
        msg = f"RTP_RECENT_LIMIT must be a positive integer, got {raw!r}"
        raise ValueError(msg)
    return limit


def get_log_level() -> str:
    """Return the LOG_LEVEL name, defaulting to WARNING."""
    return os.environ.get("LOG_LEVEL", "WARNING").upper()
