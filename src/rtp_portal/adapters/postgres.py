"""PostgreSQL record store on a psycopg async connection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import psycopg
from psycopg import sql

from rtp_portal.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Mapping


logger = logging.getLogger(__name__)


class PostgresStore:
    """RecordStore issuing one statement per call.

    Writes are committed immediately; any driver error rolls back and is
    re-raised as StoreError.
    """

    def __init__(self, conn: psycopg.AsyncConnection[dict[str, Any]]) -> None:
        self.conn = conn

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, object],
        order_by: str | None = None,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        query = sql.SQL("SELECT * FROM {table} WHERE {where}").format(
            table=sql.Identifier(table),
            where=_conditions(filters, prefix="w_"),
        )
        if order_by is not None:
            direction = sql.SQL("DESC" if descending else "ASC")
            query += sql.SQL(" ORDER BY {} {}").format(
                sql.Identifier(order_by), direction
            )
        if limit is not None:
            query += sql.SQL(" LIMIT {}").format(sql.Literal(limit))
        params = {f"w_{key}": value for key, value in filters.items()}
        return await self._execute(query, params, table=table, write=False)

    async def insert(self, table: str, payload: Mapping[str, object]) -> dict[str, Any]:
        columns = list(payload)
        query = sql.SQL(
            "INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING *"
        ).format(
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            values=sql.SQL(", ").join(sql.Placeholder(c) for c in columns),
        )
        rows = await self._execute(query, dict(payload), table=table, write=True)
        if not rows:
            msg = f"Insert into {table} returned no row"
            raise StoreError(msg)
        return rows[0]

    async def update(
        self,
        table: str,
        *,
        filters: Mapping[str, object],
        changes: Mapping[str, object],
    ) -> list[dict[str, Any]]:
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(c), sql.Placeholder(f"s_{c}"))
            for c in changes
        )
        query = sql.SQL(
            "UPDATE {table} SET {assignments} WHERE {where} RETURNING *"
        ).format(
            table=sql.Identifier(table),
            assignments=assignments,
            where=_conditions(filters, prefix="w_"),
        )
        params = {f"s_{key}": value for key, value in changes.items()}
        params.update({f"w_{key}": value for key, value in filters.items()})
        return await self._execute(query, params, table=table, write=True)

    async def _execute(
        self,
        query: sql.Composable,
        params: dict[str, object],
        *,
        table: str,
        write: bool,
    ) -> list[dict[str, Any]]:
        try:
            async with self.conn.cursor() as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
            if write:
                await self.conn.commit()
        except psycopg.Error as exc:
            logger.debug("Statement on %s failed", table, exc_info=True)
            try:
                await self.conn.rollback()
            except psycopg.Error:
                logger.debug("Error during rollback", exc_info=True)
            msg = f"Store request on {table} failed: {exc}"
            raise StoreError(msg) from exc
        return list(rows)


def _conditions(filters: Mapping[str, object], *, prefix: str) -> sql.Composable:
    if not filters:
        return sql.SQL("TRUE")
    return sql.SQL(" AND ").join(
        sql.SQL("{} = {}").format(sql.Identifier(k), sql.Placeholder(f"{prefix}{k}"))
        for k in filters
    )
