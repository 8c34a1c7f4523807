"""ServerChan push channel."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

import httpx

from pushcron.channels.base import decode_json, require_credential
from pushcron.config import settings
from pushcron.errors import ChannelError, TransportError

if TYPE_CHECKING:
    from pushcron.scheduler.models import Task

logger = logging.getLogger(__name__)

# Keys issued by ServerChan 3 embed the shard number: sctp<digits>...
SCTP_PREFIX = "sctp"
SCTP_PATTERN = re.compile(r"sctp(\d+)")
SCTP_URL = "https://{shard}.push.ft07.com/send/{key}.send"

DEFAULT_TITLE = "Scheduled notification"


def build_push_url(send_key: str, api_prefix: str | None = None) -> str:
    """Return the push endpoint for *send_key*."""
    if send_key.startswith(SCTP_PREFIX):
        match = SCTP_PATTERN.match(send_key)
        if not match:
            msg = "ServerChan: invalid sctp send_key format"
            raise ChannelError(msg)
        return SCTP_URL.format(shard=match.group(1), key=send_key)
    prefix = api_prefix or settings.server_chan_api_prefix
    return f"{prefix}{send_key}.send"


class ServerChanChannel:
    """Sends notifications through ServerChan (``sct*`` / ``sctp*`` send keys)."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout or settings.http_timeout_seconds

    @property
    def name(self) -> str:
        return "server_chan"

    def task_overrides(self, task: Task) -> dict[str, Any]:
        return {"title": task.name, **task.channel_config}

    async def send(
        self,
        content: str,
        channel_config: dict[str, Any],
        overrides: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """POST the message and check the in-body ``code``."""
        send_key = require_credential(channel_config, "send_key", "ServerChan")

        url = build_push_url(send_key, channel_config.get("api_prefix"))
        options = overrides or {}
        payload = {
            "title": options.get("title") or DEFAULT_TITLE,
            "desp": content,
            **{k: v for k, v in options.items() if k != "title"},
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    url,
                    json=payload,
                    headers={"Content-Type": "application/json;charset=utf-8"},
                )
        except httpx.HTTPError as exc:
            msg = f"ServerChan: request failed: {exc}"
            raise TransportError(msg) from exc

        data = decode_json(resp, "ServerChan")
        if data.get("code") != 0:
            msg = f"ServerChan: push failed: {data.get('message') or 'unknown error'}"
            raise ChannelError(msg)
        logger.info("ServerChan push accepted (%d chars)", len(content))
        return data
