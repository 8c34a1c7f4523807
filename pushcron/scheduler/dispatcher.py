"""TaskDispatcher: pushes one due task with bounded retry and records the outcome."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from pushcron.errors import ChannelError
from pushcron.scheduler.models import FAIL, SUCCESS, LogRecord
from pushcron.scheduler.recurrence import advance, is_expired

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import datetime

    from pushcron.channels.base import ChannelRegistry, NotificationChannel
    from pushcron.config import AppConfig
    from pushcron.scheduler.models import Task
    from pushcron.scheduler.store import TaskStore

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Delivers a task through its channel and writes back the new task state.

    Args:
        registry: Resolves ``task.channel`` to a channel implementation.
        store: TaskStore used to persist the task after a successful push.
        sleep: Awaitable ``(seconds)`` used between retries. Tests pass a
            recorder instead of ``asyncio.sleep``.
        clock: Monotonic clock in seconds, used for ``duration``.
    """

    def __init__(
        self,
        registry: ChannelRegistry,
        store: TaskStore,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry
        self._store = store
        self._sleep = sleep
        self._clock = clock

    async def dispatch_one(self, task: Task, config: AppConfig, now: datetime) -> LogRecord:
        """Dispatch *task* for the tick at *now*. Never raises."""
        started = self._clock()
        try:
            status, message = await self._dispatch(task, config, now)
        except Exception as exc:
            logger.exception("Dispatch crashed: '%s' (%s)", task.name, task.id)
            status, message = FAIL, f"Unexpected error: {exc}"
        duration = int((self._clock() - started) * 1000)
        return LogRecord(
            task_id=task.id,
            channel=task.channel,
            execute_time=now,
            status=status,
            message=message,
            duration=duration,
        )

    async def _dispatch(self, task: Task, config: AppConfig, now: datetime) -> tuple[str, str]:
        channel_config = config.notification_channels.get(task.channel)
        if channel_config is None or task.channel not in self._registry:
            # Nothing to retry against.
            logger.warning("Task %s uses unknown channel: %s", task.id, task.channel)
            return FAIL, f"Push failed: unknown channel: {task.channel}"
        channel = self._registry.get(task.channel)

        logger.info("Dispatching task: '%s' (%s) channel=%s", task.name, task.id, task.channel)
        try:
            response = await self._attempt(channel, task, channel_config)
        except ChannelError as exc:
            last_error = exc
            logger.warning("Task %s push failed: %s. Retrying...", task.id, exc)
        else:
            return await self._complete(
                task, now, f"Push succeeded, channel response: {json.dumps(response)}"
            )

        retry = config.retry_config
        for retry_count in range(1, retry.max_retry + 1):
            await self._sleep(retry.retry_interval / 1000)
            logger.info("Task %s retry %d of %d", task.id, retry_count, retry.max_retry)
            try:
                await self._attempt(channel, task, channel_config)
            except ChannelError as exc:
                last_error = exc
                continue
            return await self._complete(task, now, f"Push succeeded after {retry_count} retries")

        logger.error(
            "Task %s push failed after %d retries: %s", task.id, retry.max_retry, last_error
        )
        if is_expired(task, now):
            await self._deactivate(task, now)
        return FAIL, f"Push failed (retried {retry.max_retry} times): {last_error}"

    async def _attempt(
        self,
        channel: NotificationChannel,
        task: Task,
        channel_config: dict[str, Any],
    ) -> dict[str, Any]:
        return await channel.send(task.content, channel_config, channel.task_overrides(task))

    async def _complete(self, task: Task, now: datetime, message: str) -> tuple[str, str]:
        """Advance the task after a successful push and persist it."""
        outcome = advance(task, now)
        updated = replace(
            task,
            status=outcome.still_active,
            execute_time=outcome.next_execute_time,
            execute_count=task.execute_count + 1,
            update_time=now,
        )
        try:
            saved = await self._store.update_task(updated)
        except Exception as exc:
            # Delivered already; resending would duplicate the notification.
            logger.exception("Task %s pushed but state update failed", task.id)
            return FAIL, f"{message}; failed to update task state: {exc}"
        if not saved:
            logger.warning("Task %s pushed but was deleted before its state was saved", task.id)
            return FAIL, f"{message}; task no longer exists, state not saved"
        logger.info(
            "Task executed successfully: '%s' (%s) active=%s next=%s",
            task.name,
            task.id,
            updated.status,
            updated.execute_time.isoformat(),
        )
        return SUCCESS, message

    async def _deactivate(self, task: Task, now: datetime) -> None:
        """Stop a cycle task whose end time has passed even though its last push failed."""
        try:
            await self._store.update_task(replace(task, status=False, update_time=now))
            logger.info("Deactivated expired task: %s", task.id)
        except Exception:
            logger.exception("Failed to deactivate expired task %s", task.id)
