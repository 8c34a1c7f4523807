"""NotificationChannel protocol and the registry that resolves channels by name."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from pushcron.errors import ChannelError

if TYPE_CHECKING:
    import httpx

    from pushcron.scheduler.models import Task

logger = logging.getLogger(__name__)


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol that all push channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'server_chan'), as used in task rows."""
        ...

    def task_overrides(self, task: Task) -> dict[str, Any]:
        """Return the per-task options passed to :meth:`send`."""
        ...

    async def send(
        self,
        content: str,
        channel_config: dict[str, Any],
        overrides: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Push *content*. Returns the decoded provider response.

        Raises ChannelError (or TransportError) on any failure.
        """
        ...


def decode_json(response: httpx.Response, provider: str) -> dict[str, Any]:
    """Decode a provider response body, raising ChannelError if it is not a JSON object."""
    try:
        data = response.json()
    except ValueError as exc:
        msg = f"{provider}: malformed response (HTTP {response.status_code}): {response.text[:200]}"
        raise ChannelError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{provider}: unexpected response body: {data!r}"
        raise ChannelError(msg)
    return data


def require_credential(channel_config: dict[str, Any], key: str, provider: str) -> str:
    """Return a non-empty string credential, raising ChannelError if it is missing or mistyped."""
    value = channel_config.get(key)
    if value is None or value == "":
        msg = f"{provider}: missing {key}"
        raise ChannelError(msg)
    if not isinstance(value, str):
        msg = f"{provider}: {key} must be a string, got {type(value).__name__}"
        raise ChannelError(msg)
    return value


class ChannelRegistry:
    """Maps channel names to channel implementations."""

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}

    def register(self, channel: NotificationChannel) -> None:
        """Register a channel. Raises ValueError on duplicate name."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel
        logger.debug("Registered channel: %s", channel.name)

    def get(self, name: str) -> NotificationChannel | None:
        """Look up a channel by name."""
        return self._channels.get(name)

    @property
    def names(self) -> list[str]:
        """Names of all registered channels."""
        return list(self._channels)

    def __contains__(self, name: object) -> bool:
        return name in self._channels
