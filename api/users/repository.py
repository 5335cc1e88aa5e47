"""
User/family persistence (raw SQL over asyncpg).

Every public method acquires exactly one pooled connection and releases it
on exit. Multi-statement writes run inside `conn.transaction()`, which
commits on success and rolls back on any exception, cancellation included.

Schema (see `db/schema.sql`):
- customer(customer_id, cst_name, cst_dob, nationality_id, updated_at)
- family_list(fl_id, cst_id, fl_name, fl_dob)
- nationality(nationality_id, nationality_name, nationality_code)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, AsyncIterator, Protocol

import asyncpg
import pydantic
from pydantic import TypeAdapter

from core import db

from . import schemas
from .errors import NotFoundError, SerializationError, StorageError

_FAMILY_LIST = TypeAdapter(list[schemas.Family])

# Families are aggregated per user as a JSON array ordered by fl_id.
_DETAIL_SELECT = """
SELECT
  cust.customer_id AS user_id,
  cust.cst_name AS name,
  to_char(cust.cst_dob, 'YYYY-MM-DD') AS dob,
  cust.nationality_id,
  COALESCE(nat.nationality_name, '') AS nationality_name,
  COALESCE(nat.nationality_code, '') AS nationality_code,
  COALESCE(
    (
      SELECT JSON_AGG(
        JSON_BUILD_OBJECT(
          'family_id', fl.fl_id::int,
          'user_id', fl.cst_id::int,
          'name', fl.fl_name,
          'dob', to_char(fl.fl_dob, 'YYYY-MM-DD')
        ) ORDER BY fl.fl_id ASC
      )
      FROM family_list fl
      WHERE fl.cst_id = cust.customer_id
    ),
    '[]'::json
  )::text AS families
FROM customer cust
LEFT JOIN nationality nat ON cust.nationality_id = nat.nationality_id
"""

_UPSERT_FAMILY = """
INSERT INTO family_list (fl_id, cst_id, fl_name, fl_dob)
VALUES (
  CASE WHEN $1::bigint = 0 THEN nextval('family_list_fl_id_seq') ELSE $1::bigint END,
  $2,
  $3,
  to_date($4, 'YYYY-MM-DD')
)
ON CONFLICT (fl_id) DO UPDATE
SET cst_id = EXCLUDED.cst_id,
    fl_name = EXCLUDED.fl_name,
    fl_dob = EXCLUDED.fl_dob
"""


class UserStore(Protocol):
    async def list_users(self) -> list[schemas.UserDetailResponse]: ...

    async def get_user(self, user_id: int) -> schemas.UserDetailResponse: ...

    async def create_user(self, user: schemas.User) -> int: ...

    async def update_user(self, user: schemas.User) -> None: ...

    async def delete_user(self, user_id: int) -> None: ...

    async def delete_family(self, user_id: int, family_id: int) -> None: ...


@asynccontextmanager
async def _storage_errors(action: str) -> AsyncIterator[None]:
    try:
        yield
    except asyncio.TimeoutError:
        # Deadlines are reported by the caller, not as storage failures.
        raise
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
        raise StorageError(f"failed to {action}: {exc}") from exc


def _as_date(value: str) -> date:
    # COPY uses the binary protocol, so dates must be real date objects here.
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise StorageError(f"invalid date {value!r}: {exc}") from exc


def _copied_count(status: str) -> int:
    # asyncpg returns the command tag, e.g. "COPY 3".
    try:
        return int(status.split()[-1])
    except (IndexError, ValueError):
        return 0


def _parse_families(raw: Any) -> list[schemas.Family]:
    if raw is None or raw == "":
        return []
    try:
        return _FAMILY_LIST.validate_json(raw)
    except pydantic.ValidationError as exc:
        raise SerializationError(f"malformed families JSON: {exc}") from exc


def _to_detail(row: dict[str, Any]) -> schemas.UserDetailResponse:
    nationality_id = int(row["nationality_id"] or 0)
    return schemas.UserDetailResponse(
        user_id=int(row["user_id"]),
        name=str(row["name"]),
        dob=str(row["dob"] or ""),
        nationality_id=nationality_id,
        nationality=schemas.Nationality(
            nationality_id=nationality_id,
            nationality_name=str(row["nationality_name"]),
            nationality_code=str(row["nationality_code"]),
        ),
        families=_parse_families(row["families"]),
    )


class UserRepository:
    def __init__(self, pool: asyncpg.Pool, logger: logging.Logger) -> None:
        self._pool = pool
        self._logger = logger

    async def list_users(self) -> list[schemas.UserDetailResponse]:
        async with _storage_errors("list users"):
            async with self._pool.acquire() as conn:
                rows = await db.fetch_all(conn, _DETAIL_SELECT + "ORDER BY cust.customer_id ASC")

        users: list[schemas.UserDetailResponse] = []
        for row in rows:
            try:
                users.append(_to_detail(row))
            except SerializationError:
                self._logger.error("list_users: families decode failed user_id=%s", row.get("user_id"))
                raise
        return users

    async def get_user(self, user_id: int) -> schemas.UserDetailResponse:
        async with _storage_errors("get user"):
            async with self._pool.acquire() as conn:
                row = await db.fetch_one(conn, _DETAIL_SELECT + "WHERE cust.customer_id = $1", user_id)

        if row is None:
            raise NotFoundError(f"user {user_id} not found")
        try:
            return _to_detail(row)
        except SerializationError:
            self._logger.error("get_user: families decode failed user_id=%s", user_id)
            raise

    async def create_user(self, user: schemas.User) -> int:
        """
        Insert the user and COPY its families in one transaction.

        The generated id is stamped on `user` and each family, and returned.
        """
        async with _storage_errors("create user"):
            async with self._pool.acquire() as conn:  # type: asyncpg.Connection
                async with conn.transaction():
                    row = await db.fetch_one(
                        conn,
                        """
                        INSERT INTO customer (nationality_id, cst_name, cst_dob)
                        VALUES ($1, $2, to_date($3, 'YYYY-MM-DD'))
                        RETURNING customer_id
                        """,
                        user.nationality_id,
                        user.name,
                        user.dob,
                    )
                    if row is None:
                        raise StorageError("failed to create user: no id returned")
                    user_id = int(row["customer_id"])

                    copied = 0
                    if user.families:
                        records = [(user_id, family.name, _as_date(family.dob)) for family in user.families]
                        status = await conn.copy_records_to_table(
                            "family_list",
                            records=records,
                            columns=["cst_id", "fl_name", "fl_dob"],
                        )
                        copied = _copied_count(status)

        user.user_id = user_id
        for family in user.families:
            family.user_id = user_id
        self._logger.info("COPY inserted %d family members for user %d", copied, user_id)
        return user_id

    async def update_user(self, user: schemas.User) -> None:
        """
        Replace the user's scalar fields and upsert every supplied family.

        Families missing from `user.families` are left as they are.
        """
        async with _storage_errors("update user"):
            async with self._pool.acquire() as conn:  # type: asyncpg.Connection
                async with conn.transaction():
                    row = await db.fetch_one(
                        conn,
                        """
                        UPDATE customer
                        SET nationality_id = $1,
                            cst_name = $2,
                            cst_dob = to_date($3, 'YYYY-MM-DD'),
                            updated_at = CURRENT_TIMESTAMP
                        WHERE customer_id = $4
                        RETURNING customer_id, updated_at
                        """,
                        user.nationality_id,
                        user.name,
                        user.dob,
                        user.user_id,
                    )
                    if row is None:
                        raise NotFoundError(f"user {user.user_id} not found")

                    await self._upsert_families(conn, user.families)

    async def _upsert_families(self, conn: asyncpg.Connection, families: list[schemas.Family]) -> None:
        if not families:
            return None

        records = [(family.family_id, family.user_id, family.name, family.dob) for family in families]
        await conn.executemany(_UPSERT_FAMILY, records)
        self._logger.info("upsert user family: %d family members processed", len(records))

    async def delete_user(self, user_id: int) -> None:
        # Families go first so a non-deferred FK to customer never blocks the delete.
        async with _storage_errors("delete user"):
            async with self._pool.acquire() as conn:  # type: asyncpg.Connection
                async with conn.transaction():
                    await db.execute(conn, "DELETE FROM family_list WHERE cst_id = $1", user_id)
                    row = await db.fetch_one(
                        conn,
                        "DELETE FROM customer WHERE customer_id = $1 RETURNING customer_id",
                        user_id,
                    )
                    if row is None:
                        raise NotFoundError(f"user {user_id} not found")

    async def delete_family(self, user_id: int, family_id: int) -> None:
        async with _storage_errors("delete family"):
            async with self._pool.acquire() as conn:
                row = await db.fetch_one(
                    conn,
                    """
                    DELETE FROM family_list
                    WHERE cst_id = $1
                      AND fl_id = $2
                    RETURNING fl_id
                    """,
                    user_id,
                    family_id,
                )

        if row is None:
            raise NotFoundError(f"family {family_id} of user {user_id} not found")
