"""Recurrence calculation for tasks after a successful dispatch."""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from pushcron.scheduler.models import parse_timestamp

if TYPE_CHECKING:
    from pushcron.scheduler.models import Task

logger = logging.getLogger(__name__)

DAY = "day"
WEEK = "week"
MONTH = "month"


@dataclass(frozen=True)
class Advance:
    """Where a task goes after it fires."""

    next_execute_time: datetime
    still_active: bool


def add_months(moment: datetime, months: int = 1) -> datetime:
    """Add calendar months, clamping the day to the target month's length.

    ``2024-01-31`` plus one month is ``2024-02-29``.
    """
    index = moment.month - 1 + months
    year = moment.year + index // 12
    month = index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def add_period(moment: datetime, period: str) -> datetime | None:
    """Return *moment* plus one period, or None for an unknown period."""
    if period == DAY:
        return moment + timedelta(days=1)
    if period == WEEK:
        return moment + timedelta(days=7)
    if period == MONTH:
        return add_months(moment, 1)
    return None


def advance(task: Task, current_time: datetime) -> Advance:
    """Compute the task's state after firing at *current_time*.

    Single tasks finish. Cycle tasks finish once their end time has passed,
    otherwise move one period past *current_time*. An unknown period or
    task type leaves the task active and unchanged.
    """
    now = parse_timestamp(current_time)

    if task.is_single:
        return Advance(task.execute_time, still_active=False)

    if not task.is_cycle:
        logger.warning("Task %s has unknown type %r; not advancing", task.id, task.type)
        return Advance(task.execute_time, still_active=True)

    cycle = task.cycle_config
    if cycle is not None and cycle.end_time is not None and cycle.end_time <= now:
        return Advance(task.execute_time, still_active=False)

    period = cycle.period if cycle is not None else ""
    next_time = add_period(now, period)
    if next_time is None:
        logger.warning("Task %s has unknown cycle period %r; not advancing", task.id, period)
        return Advance(task.execute_time, still_active=True)
    return Advance(next_time, still_active=True)


def is_expired(task: Task, current_time: datetime) -> bool:
    """True for a cycle task whose end time is at or before *current_time*."""
    cycle = task.cycle_config
    return (
        task.is_cycle
        and cycle is not None
        and cycle.end_time is not None
        and cycle.end_time <= parse_timestamp(current_time)
    )
