"""Task and LogRecord data models."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

SINGLE = "single"
CYCLE = "cycle"

SUCCESS = "success"
FAIL = "fail"


# -- Timestamps -----------------------------------------------------------------


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO 8601 string (or datetime) into an aware UTC datetime.

    Naive values are assumed to be UTC.
    """
    moment = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def format_timestamp(moment: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Every stored timestamp uses this exact shape, so string comparison in
    SQL matches chronological order.
    """
    utc = parse_timestamp(moment)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(UTC)


def make_id() -> str:
    """Generate a new task or log ID."""
    return uuid.uuid4().hex


# -- Task -----------------------------------------------------------------------


@dataclass
class CycleConfig:
    """Recurrence settings for ``cycle`` tasks.

    Attributes:
        period: ``"day"``, ``"week"`` or ``"month"``.
        end_time: Once reached, the task is deactivated.
    """

    period: str = ""
    end_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"period": self.period}
        if self.end_time is not None:
            data["end_time"] = format_timestamp(self.end_time)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CycleConfig | None:
        if not data:
            return None
        end_time = data.get("end_time")
        return cls(
            period=str(data.get("period") or ""),
            end_time=parse_timestamp(end_time) if end_time else None,
        )


@dataclass
class Task:
    """A notification to push once or on a recurring schedule.

    Attributes:
        id: Unique identifier (UUID hex).
        name: Display name, also used as the push title where supported.
        content: Message body.
        channel: Name of the channel that delivers the message.
        type: ``"single"`` or ``"cycle"``.
        execute_time: Next (or most recent) scheduled firing.
        channel_config: Task-level overrides merged over the channel config.
        cycle_config: Recurrence settings, ``cycle`` tasks only.
        status: True while the task is eligible to run.
        execute_count: Number of successful dispatches.
        create_time: Creation timestamp.
        update_time: Last modification timestamp.
    """

    id: str
    name: str
    content: str
    channel: str
    type: str
    execute_time: datetime
    channel_config: dict[str, Any] = field(default_factory=dict)
    cycle_config: CycleConfig | None = None
    status: bool = True
    execute_count: int = 0
    create_time: datetime | None = None
    update_time: datetime | None = None

    def __post_init__(self) -> None:
        self.execute_time = parse_timestamp(self.execute_time)
        now = utc_now()
        if self.create_time is None:
            self.create_time = now
        if self.update_time is None:
            self.update_time = self.create_time

    @property
    def is_single(self) -> bool:
        return self.type == SINGLE

    @property
    def is_cycle(self) -> bool:
        return self.type == CYCLE

    def is_due(self, now: datetime) -> bool:
        return self.status and self.execute_time <= parse_timestamp(now)

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``task`` column order."""
        return (
            self.id,
            self.name,
            self.content,
            self.channel,
            json.dumps(self.channel_config),
            int(self.status),
            self.type,
            format_timestamp(self.execute_time),
            json.dumps(self.cycle_config.to_dict() if self.cycle_config else None),
            format_timestamp(self.create_time),
            format_timestamp(self.update_time),
            self.execute_count,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Task:
        """Deserialize from a SQLite row tuple."""
        return cls(
            id=row[0],
            name=row[1],
            content=row[2],
            channel=row[3],
            channel_config=json.loads(row[4]) if row[4] else {},
            status=bool(row[5]),
            type=row[6],
            execute_time=parse_timestamp(row[7]),
            cycle_config=CycleConfig.from_dict(json.loads(row[8]) if row[8] else None),
            create_time=parse_timestamp(row[9]),
            update_time=parse_timestamp(row[10]),
            execute_count=row[11],
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation for the admin API."""
        return {
            "id": self.id,
            "name": self.name,
            "content": self.content,
            "channel": self.channel,
            "channel_config": self.channel_config,
            "status": self.status,
            "type": self.type,
            "execute_time": format_timestamp(self.execute_time),
            "cycle_config": self.cycle_config.to_dict() if self.cycle_config else None,
            "create_time": format_timestamp(self.create_time),
            "update_time": format_timestamp(self.update_time),
            "execute_count": self.execute_count,
        }


# -- LogRecord ------------------------------------------------------------------


@dataclass
class LogRecord:
    """Outcome of dispatching one task during one tick.

    ``execute_time`` is the tick time, not the wall-clock time of the final
    attempt. ``duration`` is in milliseconds and spans every retry.
    """

    task_id: str
    channel: str
    execute_time: datetime
    status: str
    message: str
    duration: int
    id: str = field(default_factory=make_id)

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCESS

    def to_row(self) -> tuple:
        return (
            self.id,
            self.task_id,
            self.channel,
            format_timestamp(self.execute_time),
            self.status,
            self.message,
            self.duration,
        )

    @classmethod
    def from_row(cls, row: tuple) -> LogRecord:
        return cls(
            id=row[0],
            task_id=row[1],
            channel=row[2],
            execute_time=parse_timestamp(row[3]),
            status=row[4],
            message=row[5],
            duration=row[6],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "channel": self.channel,
            "execute_time": format_timestamp(self.execute_time),
            "status": self.status,
            "message": self.message,
            "duration": self.duration,
        }
