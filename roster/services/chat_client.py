# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Chat platform client, the boundary to Discord's REST API.
Fetches announcements, edits their controls, and posts messages.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from roster.core.config import settings
from roster.core.errors import ChatMessageNotFound, ChatPlatformError
from roster.core.logging import get_logger
from roster.models.domain import AnnouncementMessage

logger = get_logger(__name__)


def flatten_message(payload: dict[str, Any], channel_id: str) -> AnnouncementMessage:
    """Collapse message content and embeds into labelled text lines."""
    lines: list[str] = []
    if payload.get("content"):
        lines.append(payload["content"])
    footer: Optional[str] = None
    for embed in payload.get("embeds") or []:
        if embed.get("title"):
            lines.append(embed["title"])
        if embed.get("description"):
            lines.append(embed["description"])
        for field in embed.get("fields") or []:
            lines.append(f"{field.get('name', '')}: {field.get('value', '')}")
        if (embed.get("footer") or {}).get("text"):
            footer = embed["footer"]["text"]
    return AnnouncementMessage(
        message_id=str(payload.get("id", "")),
        channel_id=channel_id,
        text="\n".join(lines),
        footer=footer,
    )


class ChatClient(ABC):
    """What the coordinator needs from the chat platform."""

    @abstractmethod
    async def fetch_message(self, channel_id: str, message_id: str) -> AnnouncementMessage: ...

    @abstractmethod
    async def edit_controls(
        self, channel_id: str, message_id: str, components: list[dict[str, Any]]
    ) -> None: ...

    @abstractmethod
    async def post_message(
        self,
        channel_id: str,
        content: Optional[str] = None,
        embed: Optional[dict[str, Any]] = None,
        components: Optional[list[dict[str, Any]]] = None,
    ) -> str:
        """Post a message and return its id."""


class DiscordChatClient(ChatClient):
    """Discord REST v10 over httpx. Errors surface as ChatPlatformError."""

    def __init__(
        self,
        token: str | None = None,
        api_base: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._token = token if token is not None else settings.DISCORD_TOKEN
        self._api_base = (api_base or settings.DISCORD_API_BASE).rstrip("/")
        self._timeout = timeout or settings.CHAT_TIMEOUT

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bot {self._token}",
            "Content-Type": "application/json",
        }

    async def _request(
        self, method: str, path: str, json: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.request(
                    method, f"{self._api_base}{path}", headers=self._headers(), json=json
                )
        except httpx.HTTPError as exc:
            raise ChatPlatformError(f"Discord request failed: {exc}") from exc

        if resp.status_code in (403, 404):
            raise ChatMessageNotFound(
                f"Discord returned {resp.status_code} for {method} {path}"
            )
        if resp.status_code >= 400:
            raise ChatPlatformError(
                f"Discord returned {resp.status_code} for {method} {path}: {resp.text[:200]}"
            )
        return resp.json() if resp.content else {}

    async def fetch_message(self, channel_id: str, message_id: str) -> AnnouncementMessage:
        payload = await self._request(
            "GET", f"/channels/{channel_id}/messages/{message_id}"
        )
        return flatten_message(payload, channel_id)

    async def edit_controls(
        self, channel_id: str, message_id: str, components: list[dict[str, Any]]
    ) -> None:
        await self._request(
            "PATCH",
            f"/channels/{channel_id}/messages/{message_id}",
            json={"components": components},
        )

    async def post_message(
        self,
        channel_id: str,
        content: Optional[str] = None,
        embed: Optional[dict[str, Any]] = None,
        components: Optional[list[dict[str, Any]]] = None,
    ) -> str:
        body: dict[str, Any] = {}
        if content:
            body["content"] = content
        if embed:
            body["embeds"] = [embed]
        if components:
            body["components"] = components
        payload = await self._request("POST", f"/channels/{channel_id}/messages", json=body)
        message_id = str(payload.get("id", ""))
        logger.info("Message posted: channel=%s, message=%s", channel_id, message_id)
        return message_id
