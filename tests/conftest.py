"""
Shared fixtures: a fake asyncpg pool/connection pair that records how
transactions end, plus settings and logger helpers.
"""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.config import Settings


class FakeTransaction:
    def __init__(self, conn: MagicMock) -> None:
        self.conn = conn

    async def __aenter__(self):
        self.conn.tx_log.append("begin")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.conn.tx_log.append("rollback" if exc_type else "commit")
        return False


class FakeAcquire:
    def __init__(self, pool: MagicMock, conn: MagicMock) -> None:
        self.pool = pool
        self.conn = conn

    async def __aenter__(self):
        self.pool.acquired += 1
        return self.conn

    async def __aexit__(self, exc_type, exc, tb):
        self.pool.released += 1
        return False


def make_conn() -> MagicMock:
    conn = MagicMock()
    conn.tx_log = []
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="DELETE 0")
    conn.executemany = AsyncMock(return_value=None)
    conn.copy_records_to_table = AsyncMock(return_value="COPY 0")
    conn.transaction = MagicMock(side_effect=lambda: FakeTransaction(conn))
    return conn


@pytest.fixture
def conn() -> MagicMock:
    return make_conn()


@pytest.fixture
def pool(conn: MagicMock) -> MagicMock:
    fake = MagicMock()
    fake.acquired = 0
    fake.released = 0
    fake.acquire = MagicMock(side_effect=lambda: FakeAcquire(fake, conn))
    return fake


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("userfamily.tests")


def make_settings(**overrides) -> Settings:
    values = dict(
        env="test",
        port=8080,
        database_url="",
        pool_min_size=1,
        pool_max_size=2,
        max_inactive_connection_lifetime_s=60.0,
        command_timeout_s=5.0,
        request_timeout_s=10.0,
        log_level="INFO",
        cors_allow_origins=("*",),
    )
    values.update(overrides)
    return Settings(**values)
