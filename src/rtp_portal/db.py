"""Database connection helper."""

from __future__ import annotations

from typing import Any

import psycopg
from psycopg.rows import dict_row

from rtp_portal.config import get_database_url


async def get_connection() -> psycopg.AsyncConnection[dict[str, Any]]:
    """Open and return a new async database connection."""
    return await psycopg.AsyncConnection.connect(
        get_database_url(), row_factory=dict_row
    )
