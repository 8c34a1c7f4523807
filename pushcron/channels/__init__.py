"""Push channels and the registry that resolves them by name."""

from pushcron.channels.base import ChannelRegistry, NotificationChannel
from pushcron.channels.server_chan import ServerChanChannel
from pushcron.channels.wechat_work import WeChatWorkChannel


def default_registry() -> ChannelRegistry:
    """Return a registry with every built-in channel registered."""
    registry = ChannelRegistry()
    registry.register(ServerChanChannel())
    registry.register(WeChatWorkChannel())
    return registry


__all__ = [
    "ChannelRegistry",
    "NotificationChannel",
    "ServerChanChannel",
    "WeChatWorkChannel",
    "default_registry",
]
