"""SchedulerEngine: APScheduler timer that drives one tick at a time."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from pushcron.config import settings
from pushcron.errors import ConfigError
from pushcron.scheduler.models import format_timestamp, parse_timestamp, utc_now

if TYPE_CHECKING:
    from datetime import datetime

    from pushcron.config import ConfigSource
    from pushcron.scheduler.dispatcher import TaskDispatcher
    from pushcron.scheduler.models import LogRecord
    from pushcron.scheduler.store import LogStore, TaskStore

logger = logging.getLogger(__name__)

TICK_JOB_ID = "pushcron-tick"


class SchedulerEngine:
    """Runs ticks on a cron cadence and processes due tasks in each tick.

    Args:
        store: TaskStore queried for due tasks.
        log_store: LogStore receiving one record per dispatched task.
        dispatcher: TaskDispatcher that pushes each task.
        config_source: Loaded afresh at the start of every tick.
        cron: Crontab expression for the tick cadence (default from settings).
        timezone: IANA timezone for the cron trigger (default from settings).
    """

    def __init__(
        self,
        store: TaskStore,
        log_store: LogStore,
        dispatcher: TaskDispatcher,
        config_source: ConfigSource,
        *,
        cron: str | None = None,
        timezone: str | None = None,
    ) -> None:
        self._store = store
        self._log_store = log_store
        self._dispatcher = dispatcher
        self._config_source = config_source
        self._cron = cron or settings.tick_cron
        self._timezone = timezone or settings.scheduler_timezone
        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Register the tick job and start the scheduler."""
        self._scheduler.add_job(
            self.run_tick,
            trigger=CronTrigger.from_crontab(self._cron, timezone=self._timezone),
            id=TICK_JOB_ID,
            name="scheduler tick",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True
        logger.info("Scheduler started (cron=%s, tz=%s)", self._cron, self._timezone)

    async def stop(self) -> None:
        """Shut down the scheduler."""
        if self._running:
            self._scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    # -- Tick ------------------------------------------------------------------

    async def run_tick(self, now: datetime | None = None) -> list[LogRecord]:
        """Dispatch every task due at *now*. Returns the records written.

        Never raises: a configuration failure aborts the tick, any other
        failure is confined to the task it happened in.
        """
        tick_time = parse_timestamp(now) if now is not None else utc_now()
        logger.info("Tick triggered at %s", format_timestamp(tick_time))

        try:
            config = await self._config_source.load()
        except ConfigError as exc:
            logger.error("Tick aborted, configuration unavailable: %s", exc)
            return []
        except Exception:
            logger.exception("Tick aborted, configuration could not be loaded")
            return []

        try:
            due = await self._store.query_due(tick_time)
        except Exception:
            logger.exception("Tick aborted, could not query due tasks")
            return []
        logger.info("Found %d due task(s)", len(due))

        records: list[LogRecord] = []
        for task in due:
            record = await self._dispatcher.dispatch_one(task, config, tick_time)
            try:
                await self._log_store.append(record)
            except Exception:
                logger.exception("Failed to write log record for task %s", task.id)
            records.append(record)
        return records
