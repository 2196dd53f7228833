"""Unverified-account reaper: periodic cleanup of stale pending accounts"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from .database import Database
from .exception import (
    AuthkeeperException,
    ConfigError,
    DeletionError,
    ReaperAlreadyStartedError,
)
from .model import User

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_CRON = "*/30 * * * *"
DEFAULT_RETENTION = timedelta(minutes=30)


async def remove_unverified_accounts(
    database: Database,
    retention: timedelta = DEFAULT_RETENTION,
    now: datetime | None = None,
) -> int:
    """Delete every unverified account created before now - retention

    A single bulk delete. Records already gone are simply not matched,
    so running it again is harmless.

    Args:
        database: Database handle
        retention: How long an unverified account is kept
        now: Reference time (defaults to the current time)

    Returns:
        Number of deleted records as reported by the driver

    Raises:
        DeletionError: The bulk delete failed
        ConnectionError: Database not connected or unreachable
    """
    now = now or datetime.now()
    cutoff = now - retention

    stmt = (
        delete(User)
        .where(
            User.account_verified.is_(False),
            User.created_at < cutoff,
        )
        .execution_options(synchronize_session=False)
    )

    try:
        async with database.session() as session:
            result = await session.execute(stmt)
    except SQLAlchemyError as e:
        raise DeletionError(f"Failed to delete unverified accounts: {e}") from e

    deleted = result.rowcount or 0
    logger.info(
        f"Removed {deleted} unverified account(s) created before {cutoff:%Y-%m-%d %H:%M:%S}"
    )
    return deleted


class UnverifiedAccountReaper:
    """
    Recurring cleanup of unverified accounts.

    - APScheduler cron trigger on wall-clock time (default minutes 0 and 30)
    - Single-flight: a sweep never starts while another one is running
    - A failed sweep is logged and dropped; the next tick tries again
    """

    JOB_ID = "remove_unverified_accounts"

    def __init__(
        self,
        database: Database,
        cron: str = DEFAULT_CLEANUP_CRON,
        retention: timedelta = DEFAULT_RETENTION,
    ):
        """
        Initialize the reaper.

        Args:
            database: Database handle shared with the credential store
            cron: Five-field cron expression for the sweep schedule
            retention: How long an unverified account is kept

        Raises:
            ConfigError: If the cron expression is invalid
        """
        self.database = database
        self.cron = cron
        self.retention = retention

        try:
            self._trigger = CronTrigger.from_crontab(cron)
        except ValueError as e:
            raise ConfigError(f"Invalid cleanup cron expression '{cron}': {e}") from e

        self._scheduler: Optional[AsyncIOScheduler] = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    @property
    def next_run_time(self) -> datetime | None:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(self.JOB_ID)
        return job.next_run_time if job else None

    # ========== Lifecycle ==========

    def start(self) -> None:
        """
        Start the scheduler. Must be called from a running event loop.

        Raises:
            ReaperAlreadyStartedError: If already started
        """
        if self._scheduler is not None:
            raise ReaperAlreadyStartedError("Unverified-account reaper is already running")

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self._scheduled_sweep,
            trigger=self._trigger,
            id=self.JOB_ID,
            name="Remove unverified accounts",
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()

        logger.info(
            f"Unverified-account reaper started: cron='{self.cron}', "
            f"retention={self.retention}, next_run={self.next_run_time}"
        )

    def stop(self) -> None:
        """Stop the scheduler. A sweep already in flight is not cancelled."""
        if self._scheduler is None:
            return

        try:
            self._scheduler.shutdown(wait=False)
        except Exception as e:
            logger.error(f"Error shutting down reaper scheduler: {e}", exc_info=True)
        self._scheduler = None
        logger.info("Unverified-account reaper stopped")

    # ========== Sweeps ==========

    async def run_once(self, now: datetime | None = None) -> int | None:
        """
        Run one sweep unless another one is in flight.

        Returns:
            Number of deleted records, or None if the sweep was skipped

        Raises:
            DeletionError: The bulk delete failed
            ConnectionError: Database not connected or unreachable
        """
        if self._lock.locked():
            logger.warning("Previous unverified-account sweep still running, skipping")
            return None

        async with self._lock:
            return await remove_unverified_accounts(
                self.database,
                retention=self.retention,
                now=now,
            )

    async def _scheduled_sweep(self) -> None:
        """Scheduled tick handler. Failures are logged, never raised."""
        logger.debug("Unverified-account sweep triggered")
        try:
            await self.run_once()
        except AuthkeeperException as e:
            logger.error(f"Unverified-account sweep failed ({e.code}): {e.message}")
        except Exception as e:
            logger.error(f"Unverified-account sweep failed: {e}", exc_info=True)
