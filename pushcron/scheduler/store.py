"""aiosqlite persistence for tasks, execution logs and runtime configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiosqlite

from pushcron.config import settings
from pushcron.errors import NotFoundError
from pushcron.scheduler.models import LogRecord, Task, format_timestamp

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TASK_TABLE = """
CREATE TABLE IF NOT EXISTS task (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    content TEXT NOT NULL,
    channel TEXT NOT NULL,
    channel_config TEXT NOT NULL DEFAULT '{}',
    status INTEGER NOT NULL DEFAULT 1,
    type TEXT NOT NULL,
    execute_time TEXT NOT NULL,
    cycle_config TEXT,
    create_time TEXT NOT NULL,
    update_time TEXT NOT NULL,
    execute_count INTEGER NOT NULL DEFAULT 0
)
"""

_CREATE_LOG_TABLE = """
CREATE TABLE IF NOT EXISTS log (
    id TEXT PRIMARY KEY,
    task_id TEXT NOT NULL,
    channel TEXT NOT NULL,
    execute_time TEXT NOT NULL,
    status TEXT NOT NULL,
    message TEXT NOT NULL DEFAULT '',
    duration INTEGER NOT NULL DEFAULT 0
)
"""

_CREATE_CONFIG_TABLE = """
CREATE TABLE IF NOT EXISTS config_kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class _SQLiteStore:
    """Shared connection handling. Subclasses set ``_schema``."""

    _schema: str = ""

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(self._schema)
            await db.commit()
            self._initialised = True
        return db


class TaskStore(_SQLiteStore):
    """Owns persisted task state.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _schema = _CREATE_TASK_TABLE

    async def add_task(self, task: Task) -> Task:
        """Insert a new task. Returns the same task object."""
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO task
                    (id, name, content, channel, channel_config, status, type,
                     execute_time, cycle_config, create_time, update_time, execute_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                task.to_row(),
            )
            await db.commit()
            logger.info("Added task: %s (%s)", task.name, task.id)
            return task
        finally:
            await db.close()

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT * FROM task WHERE id = ?", (task_id,))
            row = await cursor.fetchone()
            return Task.from_row(row) if row else None
        finally:
            await db.close()

    async def require_task(self, task_id: str) -> Task:
        """Fetch a task by ID. Raises NotFoundError if it does not exist."""
        task = await self.get_task(task_id)
        if task is None:
            msg = f"Task not found: {task_id}"
            raise NotFoundError(msg)
        return task

    async def list_tasks(self) -> list[Task]:
        """Return every task, oldest first."""
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT * FROM task ORDER BY create_time, rowid")
            rows = await cursor.fetchall()
            return [Task.from_row(row) for row in rows]
        finally:
            await db.close()

    async def query_due(self, now: datetime) -> list[Task]:
        """Return active tasks with ``execute_time <= now``, earliest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                SELECT * FROM task
                WHERE status = 1 AND execute_time <= ?
                ORDER BY execute_time ASC, rowid ASC
                """,
                (format_timestamp(now),),
            )
            rows = await cursor.fetchall()
            return [Task.from_row(row) for row in rows]
        finally:
            await db.close()

    async def update_task(self, task: Task) -> bool:
        """Overwrite every mutable column. Returns True if a row was updated."""
        row = task.to_row()
        db = await self._connect()
        try:
            cursor = await db.execute(
                """
                UPDATE task SET
                    name = ?, content = ?, channel = ?, channel_config = ?, status = ?,
                    type = ?, execute_time = ?, cycle_config = ?, update_time = ?,
                    execute_count = ?
                WHERE id = ?
                """,
                (*row[1:9], row[10], row[11], task.id),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task. Returns True if a row was removed."""
        db = await self._connect()
        try:
            cursor = await db.execute("DELETE FROM task WHERE id = ?", (task_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("Deleted task: %s", task_id)
            return deleted
        finally:
            await db.close()


class LogStore(_SQLiteStore):
    """Append-only execution log."""

    _schema = _CREATE_LOG_TABLE

    async def append(self, record: LogRecord) -> None:
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO log (id, task_id, channel, execute_time, status, message, duration)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                record.to_row(),
            )
            await db.commit()
        finally:
            await db.close()

    async def list_logs(self, task_id: str | None = None, limit: int = 50) -> list[LogRecord]:
        """Return the most recent records, newest first, optionally for one task."""
        db = await self._connect()
        try:
            if task_id is None:
                cursor = await db.execute(
                    "SELECT * FROM log ORDER BY execute_time DESC, rowid DESC LIMIT ?",
                    (limit,),
                )
            else:
                cursor = await db.execute(
                    """
                    SELECT * FROM log WHERE task_id = ?
                    ORDER BY execute_time DESC, rowid DESC LIMIT ?
                    """,
                    (task_id, limit),
                )
            rows = await cursor.fetchall()
            return [LogRecord.from_row(row) for row in rows]
        finally:
            await db.close()


class ConfigStore(_SQLiteStore):
    """Key-value table holding the runtime configuration document."""

    _schema = _CREATE_CONFIG_TABLE

    async def get(self, key: str) -> str | None:
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT value FROM config_kv WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return row[0] if row else None
        finally:
            await db.close()

    async def put(self, key: str, value: str) -> None:
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO config_kv (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            await db.commit()
            logger.info("Stored configuration under key %s", key)
        finally:
            await db.close()
