"""Tests for ChannelRegistry."""

import pytest

from pushcron.channels import (
    ChannelRegistry,
    NotificationChannel,
    ServerChanChannel,
    WeChatWorkChannel,
    default_registry,
)


def test_register_and_get() -> None:
    registry = ChannelRegistry()
    channel = ServerChanChannel()
    registry.register(channel)

    assert registry.get("server_chan") is channel
    assert "server_chan" in registry
    assert registry.names == ["server_chan"]


def test_get_unknown_returns_none() -> None:
    assert ChannelRegistry().get("pigeon") is None


def test_duplicate_name_raises() -> None:
    registry = ChannelRegistry()
    registry.register(ServerChanChannel())
    with pytest.raises(ValueError, match="already registered"):
        registry.register(ServerChanChannel())


def test_default_registry_has_builtin_channels() -> None:
    registry = default_registry()
    assert set(registry.names) == {"server_chan", "wechat_work"}
    assert isinstance(registry.get("wechat_work"), WeChatWorkChannel)


def test_builtin_channels_satisfy_protocol() -> None:
    assert isinstance(ServerChanChannel(), NotificationChannel)
    assert isinstance(WeChatWorkChannel(), NotificationChannel)
