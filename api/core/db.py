"""
Async database access helpers (raw SQL) using asyncpg.

The pool is created once per process by the FastAPI lifespan (see
`api/main.py`) and stored on `app.state`; repositories receive it through
their constructor.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import logging
from typing import Any, Union

import asyncpg

from .config import Settings

# Anything that exposes fetchrow/fetch/execute: a pool or an acquired connection.
Executor = Union[asyncpg.Pool, asyncpg.Connection]


async def create_pool(settings: Settings, logger: logging.Logger) -> asyncpg.Pool:
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL (or DB_HOST/DB_NAME) is not set.")

    pool = await asyncpg.create_pool(
        dsn=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        max_inactive_connection_lifetime=settings.max_inactive_connection_lifetime_s,
        command_timeout=settings.command_timeout_s,
    )

    try:
        await pool.fetchval("SELECT 1", timeout=5)
    except Exception:
        await pool.close()
        raise

    logger.info(
        "postgres pool established min_size=%s max_size=%s",
        settings.pool_min_size,
        settings.pool_max_size,
    )
    return pool


async def close_pool(pool: asyncpg.Pool | None) -> None:
    if pool is None:
        return None
    await pool.close()


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(conn: Executor, sql: str, *args: Any) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    row = await conn.fetchrow(sql, *args)
    return _record_to_dict(row) if row is not None else None


async def fetch_all(conn: Executor, sql: str, *args: Any) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    rows = await conn.fetch(sql, *args)
    return [_record_to_dict(r) for r in rows]


async def execute(conn: Executor, sql: str, *args: Any) -> str:
    """
    Run a statement (INSERT/UPDATE/DELETE/DDL) and return asyncpg's status tag.
    """
    return await conn.execute(sql, *args)
