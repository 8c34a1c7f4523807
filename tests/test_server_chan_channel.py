"""Tests for the ServerChan channel."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from pushcron.channels.server_chan import DEFAULT_TITLE, ServerChanChannel, build_push_url
from pushcron.errors import ChannelError, TransportError
from pushcron.scheduler.models import Task


def _mock_httpx_client(mock_client_cls: MagicMock, response: httpx.Response) -> AsyncMock:
    """Wire up an AsyncClient context-manager mock that returns *response*."""
    mock_client = AsyncMock()
    mock_client.post.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


def _response(status: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://example.test"), **kwargs)


@pytest.fixture
def channel() -> ServerChanChannel:
    return ServerChanChannel(timeout=5)


# -- build_push_url ------------------------------------------------------------


class TestBuildPushUrl:
    def test_sctp_key_uses_shard(self) -> None:
        url = build_push_url("sctp1234tABCDEF")
        assert url == "https://1234.push.ft07.com/send/sctp1234tABCDEF.send"

    def test_sctp_key_without_shard_raises(self) -> None:
        with pytest.raises(ChannelError, match="sctp"):
            build_push_url("sctpXYZ")

    def test_plain_key_uses_prefix(self) -> None:
        url = build_push_url("SCT999", "https://push.example.com/")
        assert url == "https://push.example.com/SCT999.send"

    def test_plain_key_default_prefix(self) -> None:
        assert build_push_url("SCT999") == "https://sctapi.ftqq.com/SCT999.send"


# -- task_overrides ------------------------------------------------------------


def test_task_overrides_use_name_as_title(channel: ServerChanChannel) -> None:
    task = Task(
        id="t1",
        name="Standup",
        content="in 5 minutes",
        channel="server_chan",
        type="single",
        execute_time=datetime(2025, 6, 1, tzinfo=UTC),
        channel_config={"channel": "9"},
    )
    assert channel.task_overrides(task) == {"title": "Standup", "channel": "9"}


# -- send ----------------------------------------------------------------------


async def test_send_success(channel: ServerChanChannel) -> None:
    resp = _response(json={"code": 0, "message": "", "data": {"pushid": "1"}})
    with patch("pushcron.channels.server_chan.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, resp)
        data = await channel.send(
            "Water the plants",
            {"send_key": "SCT123", "api_prefix": "https://push.example.com/"},
            {"title": "Plants", "short": "water"},
        )

    assert data["code"] == 0
    client.post.assert_called_once()
    args, kwargs = client.post.call_args
    assert args[0] == "https://push.example.com/SCT123.send"
    assert kwargs["json"] == {"title": "Plants", "desp": "Water the plants", "short": "water"}


async def test_send_default_title(channel: ServerChanChannel) -> None:
    resp = _response(json={"code": 0})
    with patch("pushcron.channels.server_chan.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, resp)
        await channel.send("hi", {"send_key": "SCT123"})

    assert client.post.call_args.kwargs["json"]["title"] == DEFAULT_TITLE


async def test_send_missing_key_raises(channel: ServerChanChannel) -> None:
    with patch("pushcron.channels.server_chan.httpx.AsyncClient") as mock_cls:
        with pytest.raises(ChannelError, match="send_key"):
            await channel.send("hi", {})
        mock_cls.assert_not_called()


@pytest.mark.parametrize("send_key", [12345, ["SCT123"], {"key": "SCT123"}])
async def test_send_non_string_key_raises(channel: ServerChanChannel, send_key) -> None:
    with patch("pushcron.channels.server_chan.httpx.AsyncClient") as mock_cls:
        with pytest.raises(ChannelError, match="send_key must be a string"):
            await channel.send("hi", {"send_key": send_key})
        mock_cls.assert_not_called()


async def test_send_nonzero_code_raises(channel: ServerChanChannel) -> None:
    resp = _response(json={"code": 40001, "message": "bad key"})
    with patch("pushcron.channels.server_chan.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, resp)
        with pytest.raises(ChannelError, match="bad key"):
            await channel.send("hi", {"send_key": "SCT123"})


async def test_send_malformed_response_raises(channel: ServerChanChannel) -> None:
    resp = _response(502, text="<html>Bad Gateway</html>")
    with patch("pushcron.channels.server_chan.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, resp)
        with pytest.raises(ChannelError, match="malformed"):
            await channel.send("hi", {"send_key": "SCT123"})


async def test_send_network_error_raises_transport_error(channel: ServerChanChannel) -> None:
    with patch("pushcron.channels.server_chan.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, _response(json={"code": 0}))
        client.post.side_effect = httpx.ConnectError("connection refused")
        with pytest.raises(TransportError, match="connection refused"):
            await channel.send("hi", {"send_key": "SCT123"})
