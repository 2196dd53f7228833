"""Tests for the unverified-account reaper"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from authkeeper.backend import reaper as reaper_module
from authkeeper.backend.database import Database
from authkeeper.backend.exception import (
    ConfigError,
    ConnectionError,
    DeletionError,
    ReaperAlreadyStartedError,
)
from authkeeper.backend.model import User
from authkeeper.backend.reaper import UnverifiedAccountReaper, remove_unverified_accounts

NOW = datetime(2024, 5, 1, 12, 0, 0)


async def add_user(store, name, created_at, verified=False):
    user = User(
        name=name,
        email=f"{name.lower()}@example.com",
        password="password123",
        account_verified=verified,
        created_at=created_at,
    )
    return await store.save(user)


async def remaining_names(database):
    async with database.session() as session:
        result = await session.execute(select(User.name).order_by(User.name))
        return list(result.scalars().all())


class BrokenDatabase:
    """Database handle whose every query fails at the driver level"""

    @asynccontextmanager
    async def session(self):
        raise SQLAlchemyError("disk I/O error")
        yield


# ========== Sweep ==========


async def test_stale_unverified_account_is_deleted(database, store):
    await add_user(store, "Old", NOW - timedelta(minutes=31))
    await add_user(store, "Young", NOW - timedelta(minutes=29))

    deleted = await remove_unverified_accounts(database, now=NOW)

    assert deleted == 1
    assert await remaining_names(database) == ["Young"]


async def test_account_exactly_at_cutoff_is_kept(database, store):
    await add_user(store, "Edge", NOW - timedelta(minutes=30))

    assert await remove_unverified_accounts(database, now=NOW) == 0
    assert await remaining_names(database) == ["Edge"]


async def test_verified_account_is_never_deleted(database, store):
    await add_user(store, "Ancient", NOW - timedelta(days=365), verified=True)

    assert await remove_unverified_accounts(database, now=NOW) == 0
    assert await remaining_names(database) == ["Ancient"]


async def test_sweep_is_idempotent(database, store):
    await add_user(store, "Old", NOW - timedelta(minutes=45))
    await add_user(store, "Verified", NOW - timedelta(minutes=45), verified=True)
    await add_user(store, "Young", NOW - timedelta(minutes=5))

    assert await remove_unverified_accounts(database, now=NOW) == 1
    after_first = await remaining_names(database)

    assert await remove_unverified_accounts(database, now=NOW) == 0
    assert await remaining_names(database) == after_first == ["Verified", "Young"]


async def test_custom_retention(database, store):
    await add_user(store, "Old", NOW - timedelta(minutes=11))

    assert await remove_unverified_accounts(database, retention=timedelta(minutes=10), now=NOW) == 1


async def test_pending_account_is_removed_but_verified_one_survives(database, store):
    t = NOW
    account_a = await add_user(store, "A", t)
    account_b = await add_user(store, "B", t)

    code = await store.issue_verification_code(account_b, now=t + timedelta(minutes=9))
    assert await store.verify_account(account_b, code, now=t + timedelta(minutes=10))

    await remove_unverified_accounts(database, now=t + timedelta(minutes=31))

    assert await store.get(account_a.id) is None
    assert (await store.get(account_b.id)).account_verified is True


async def test_sweep_failure_raises_deletion_error():
    with pytest.raises(DeletionError) as exc_info:
        await remove_unverified_accounts(BrokenDatabase(), now=NOW)
    assert exc_info.value.code == "DELETION_FAILURE"


async def test_sweep_without_connection_raises_connection_error():
    with pytest.raises(ConnectionError):
        await remove_unverified_accounts(Database(), now=NOW)


# ========== Scheduler ==========


def test_invalid_cron_is_rejected():
    with pytest.raises(ConfigError):
        UnverifiedAccountReaper(Database(), cron="every half hour")


async def test_start_and_stop(database):
    reaper = UnverifiedAccountReaper(database)
    assert not reaper.is_running
    assert reaper.next_run_time is None

    reaper.start()
    try:
        assert reaper.is_running
        next_run = reaper.next_run_time
        assert next_run.minute in (0, 30)
        assert next_run.second == 0

        with pytest.raises(ReaperAlreadyStartedError):
            reaper.start()
    finally:
        reaper.stop()

    assert not reaper.is_running
    # Stopping twice is a no-op
    reaper.stop()


async def test_run_once_deletes_stale_accounts(database, store):
    await add_user(store, "Old", NOW - timedelta(minutes=31))
    reaper = UnverifiedAccountReaper(database)

    assert await reaper.run_once(now=NOW) == 1
    assert await remaining_names(database) == []


async def test_run_once_is_single_flight(database, monkeypatch):
    release = asyncio.Event()
    calls = []

    async def slow_sweep(database, retention, now):
        calls.append(now)
        await release.wait()
        return 3

    monkeypatch.setattr(reaper_module, "remove_unverified_accounts", slow_sweep)
    reaper = UnverifiedAccountReaper(database)

    first = asyncio.create_task(reaper.run_once(now=NOW))
    await asyncio.sleep(0)

    assert await reaper.run_once(now=NOW) is None

    release.set()
    assert await first == 3
    assert len(calls) == 1

    # Lock released once the first sweep finished
    assert await reaper.run_once(now=NOW) == 3


async def test_scheduled_tick_swallows_connection_failure(caplog):
    reaper = UnverifiedAccountReaper(Database())

    with caplog.at_level(logging.ERROR, logger="authkeeper.backend.reaper"):
        await reaper._scheduled_sweep()

    assert "CONNECTION_ERROR" in caplog.text


async def test_scheduled_tick_swallows_deletion_failure(caplog):
    reaper = UnverifiedAccountReaper(BrokenDatabase())

    with caplog.at_level(logging.ERROR, logger="authkeeper.backend.reaper"):
        await reaper._scheduled_sweep()

    assert "DELETION_FAILURE" in caplog.text
