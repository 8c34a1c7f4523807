"""WeChat Work (enterprise WeChat) application-message channel."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from pushcron.channels.base import decode_json, require_credential
from pushcron.config import settings
from pushcron.errors import ChannelError, TransportError

if TYPE_CHECKING:
    from pushcron.scheduler.models import Task

logger = logging.getLogger(__name__)

API_BASE = "https://qyapi.weixin.qq.com/cgi-bin"
TOKEN_URL = f"{API_BASE}/gettoken"
SEND_URL = f"{API_BASE}/message/send"

DEFAULT_CARD_TITLE = "Scheduled reminder"
DEFAULT_CARD_URL = "https://example.com/task-detail"
DEFAULT_CARD_BUTTON = "Details"

RECEIVER_KEYS = ("touser", "toparty", "totag")


def resolve_receivers(
    default_receiver: dict[str, Any] | None,
    overrides: dict[str, Any] | None,
) -> dict[str, str]:
    """Merge task overrides over the channel's default receivers."""
    merged = {**(default_receiver or {}), **(overrides or {})}
    return {
        "touser": merged.get("touser") or "@all",
        "toparty": merged.get("toparty") or "",
        "totag": merged.get("totag") or "",
    }


class WeChatWorkChannel:
    """Sends text-card messages through a WeChat Work application."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout or settings.http_timeout_seconds

    @property
    def name(self) -> str:
        return "wechat_work"

    def task_overrides(self, task: Task) -> dict[str, Any]:
        return {k: v for k, v in task.channel_config.items() if k in RECEIVER_KEYS}

    async def _fetch_token(self, client: httpx.AsyncClient, corp_id: str, secret: str) -> str:
        resp = await client.get(TOKEN_URL, params={"corpid": corp_id, "corpsecret": secret})
        data = decode_json(resp, "WeChatWork")
        if data.get("errcode") != 0:
            msg = f"WeChatWork: failed to get access token: {data.get('errmsg')}"
            raise ChannelError(msg)
        token = data.get("access_token")
        if not token:
            msg = "WeChatWork: token response has no access_token"
            raise ChannelError(msg)
        return token

    async def send(
        self,
        content: str,
        channel_config: dict[str, Any],
        overrides: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Exchange credentials for a token, then post the card."""
        corp_id = require_credential(channel_config, "corp_id", "WeChatWork")
        app_secret = require_credential(channel_config, "app_secret", "WeChatWork")
        agent_id = channel_config.get("agent_id")
        if agent_id is None or agent_id == "":
            msg = "WeChatWork: missing agent_id"
            raise ChannelError(msg)
        try:
            agent = int(agent_id)
        except (TypeError, ValueError) as exc:
            msg = f"WeChatWork: agent_id must be an integer, got {agent_id!r}"
            raise ChannelError(msg) from exc

        body = {
            **resolve_receivers(channel_config.get("default_receiver"), overrides),
            "msgtype": "textcard",
            "agentid": agent,
            "textcard": {
                "title": channel_config.get("card_title") or DEFAULT_CARD_TITLE,
                "description": content,
                "url": channel_config.get("card_url") or DEFAULT_CARD_URL,
                "btntxt": channel_config.get("card_button") or DEFAULT_CARD_BUTTON,
            },
            "safe": 0,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                token = await self._fetch_token(client, corp_id, app_secret)
                resp = await client.post(SEND_URL, params={"access_token": token}, json=body)
        except httpx.HTTPError as exc:
            msg = f"WeChatWork: request failed: {exc}"
            raise TransportError(msg) from exc

        data = decode_json(resp, "WeChatWork")
        if data.get("errcode") != 0:
            msg = f"WeChatWork: push failed: {data.get('errmsg')}"
            raise ChannelError(msg)
        logger.info("WeChatWork push accepted for %s", body["touser"])
        return data
