"""Request payload models for the admin API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pushcron.scheduler.models import CycleConfig, Task, make_id, utc_now

REQUIRED_FIELDS = ("name", "content", "channel", "execute_time", "type")
CYCLE_CONFIG_REQUIRED = "cycle tasks require cycle_config with a period"


class CyclePayload(BaseModel):
    period: Literal["day", "week", "month"]
    end_time: datetime | None = None

    def to_cycle_config(self) -> CycleConfig:
        return CycleConfig(period=self.period, end_time=self.end_time)


class TaskCreate(BaseModel):
    """Body of ``POST /api/tasks``."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    content: str = Field(min_length=1)
    channel: str = Field(min_length=1)
    execute_time: datetime
    type: Literal["single", "cycle"]
    status: bool = True
    channel_config: dict[str, Any] = Field(default_factory=dict)
    cycle_config: CyclePayload | None = None

    @model_validator(mode="after")
    def check_cycle_config(self) -> TaskCreate:
        if self.type == "cycle" and self.cycle_config is None:
            msg = CYCLE_CONFIG_REQUIRED
            raise ValueError(msg)
        return self

    def to_task(self) -> Task:
        now = utc_now()
        return Task(
            id=make_id(),
            name=self.name,
            content=self.content,
            channel=self.channel,
            type=self.type,
            execute_time=self.execute_time,
            channel_config=self.channel_config,
            cycle_config=self.cycle_config.to_cycle_config() if self.cycle_config else None,
            status=self.status,
            execute_count=0,
            create_time=now,
            update_time=now,
        )


class TaskUpdate(BaseModel):
    """Body of ``PUT /api/tasks/{id}``. Only the fields sent are changed."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)
    channel: str | None = Field(default=None, min_length=1)
    execute_time: datetime | None = None
    type: Literal["single", "cycle"] | None = None
    status: bool | None = None
    channel_config: dict[str, Any] | None = None
    cycle_config: CyclePayload | None = None

    def changes(self) -> dict[str, Any]:
        """Return the fields that were explicitly provided, as Task attributes."""
        changes: dict[str, Any] = {}
        for key in self.model_fields_set:
            if key == "cycle_config":
                changes[key] = self.cycle_config.to_cycle_config() if self.cycle_config else None
                continue
            value = getattr(self, key)
            if value is not None:
                changes[key] = value
        return changes
