"""
End-to-end repository checks against a real PostgreSQL.

Set TEST_DATABASE_URL to a disposable database to run these; the schema is
dropped and recreated for every test.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import asyncpg
import pytest
import pytest_asyncio

from users.errors import NotFoundError, StorageError
from users.repository import UserRepository
from users.schemas import Family, User

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "").strip()
SCHEMA = Path(__file__).resolve().parents[1] / "db" / "schema.sql"

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL is not set")


@pytest_asyncio.fixture
async def repo():
    pool = await asyncpg.create_pool(dsn=TEST_DATABASE_URL, min_size=1, max_size=2)
    async with pool.acquire() as conn:
        await conn.execute("DROP TABLE IF EXISTS family_list, customer, nationality CASCADE")
        await conn.execute(SCHEMA.read_text())
        await conn.execute(
            "INSERT INTO nationality (nationality_name, nationality_code) VALUES ('Indonesia', 'ID')"
        )
    try:
        yield UserRepository(pool, logging.getLogger("userfamily.tests"))
    finally:
        await pool.close()


def _alice(*families: Family) -> User:
    return User(name="Alice Tan", dob="1990-05-12", nationality_id=1, families=list(families))


@pytest.mark.asyncio
async def test_create_then_detail_returns_families_in_id_order(repo):
    user_id = await repo.create_user(
        _alice(Family(name="Bobby Tan", dob="2015-01-01"), Family(name="Carla Tan", dob="2018-12-31"))
    )

    detail = await repo.get_user(user_id)

    assert (detail.name, detail.dob, detail.nationality_id) == ("Alice Tan", "1990-05-12", 1)
    assert detail.nationality.nationality_code == "ID"
    assert [f.name for f in detail.families] == ["Bobby Tan", "Carla Tan"]
    ids = [f.family_id for f in detail.families]
    assert ids == sorted(ids)
    assert all(f.user_id == user_id for f in detail.families)


@pytest.mark.asyncio
async def test_create_is_atomic_when_family_copy_fails(repo):
    user = User(name="Alice Tan", dob="1990-05-12", nationality_id=1, families=[Family(name="X" * 60, dob="2015-01-01")])

    with pytest.raises(StorageError):
        await repo.create_user(user)

    assert await repo.list_users() == []


@pytest.mark.asyncio
async def test_update_upserts_and_keeps_omitted_families(repo):
    user_id = await repo.create_user(
        _alice(Family(name="Bobby Tan", dob="2015-01-01"), Family(name="Carla Tan", dob="2018-12-31"))
    )
    bobby, carla = (await repo.get_user(user_id)).families

    await repo.update_user(
        User(
            user_id=user_id,
            name="Alice Tanaka",
            dob="1990-05-13",
            nationality_id=1,
            families=[
                Family(family_id=bobby.family_id, user_id=user_id, name="Bobby Tanaka", dob="2015-01-02"),
                Family(family_id=0, user_id=user_id, name="Dewi Tanaka", dob="2021-07-07"),
            ],
        )
    )

    detail = await repo.get_user(user_id)
    assert detail.name == "Alice Tanaka"
    by_id = {f.family_id: f for f in detail.families}
    assert by_id[bobby.family_id].name == "Bobby Tanaka"
    assert by_id[carla.family_id].name == "Carla Tan"
    assert len(detail.families) == 3


@pytest.mark.asyncio
async def test_update_missing_user_is_not_found(repo):
    with pytest.raises(NotFoundError):
        await repo.update_user(User(user_id=404, name="Alice Tan", dob="1990-05-12", nationality_id=1))


@pytest.mark.asyncio
async def test_delete_user_removes_user_and_families(repo):
    user_id = await repo.create_user(_alice(Family(name="Bobby Tan", dob="2015-01-01")))

    await repo.delete_user(user_id)

    with pytest.raises(NotFoundError):
        await repo.get_user(user_id)
    async with repo._pool.acquire() as conn:
        assert await conn.fetchval("SELECT count(*) FROM family_list WHERE cst_id = $1", user_id) == 0


@pytest.mark.asyncio
async def test_delete_family_removes_exactly_one_row(repo):
    user_id = await repo.create_user(
        _alice(Family(name="Bobby Tan", dob="2015-01-01"), Family(name="Carla Tan", dob="2018-12-31"))
    )
    other_id = await repo.create_user(_alice(Family(name="Eko Santoso", dob="2010-10-10")))
    bobby, carla = (await repo.get_user(user_id)).families

    await repo.delete_family(user_id, bobby.family_id)

    assert [f.family_id for f in (await repo.get_user(user_id)).families] == [carla.family_id]
    assert len((await repo.get_user(other_id)).families) == 1
    with pytest.raises(NotFoundError):
        await repo.delete_family(user_id, bobby.family_id)
