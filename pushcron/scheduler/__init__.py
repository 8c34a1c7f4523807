"""Scheduled push system: models, persistence, recurrence, dispatch, and ticks."""

from pushcron.scheduler.dispatcher import TaskDispatcher
from pushcron.scheduler.engine import SchedulerEngine
from pushcron.scheduler.models import LogRecord, Task
from pushcron.scheduler.recurrence import advance
from pushcron.scheduler.store import ConfigStore, LogStore, TaskStore

__all__ = [
    "ConfigStore",
    "LogRecord",
    "LogStore",
    "SchedulerEngine",
    "Task",
    "TaskDispatcher",
    "TaskStore",
    "advance",
]
