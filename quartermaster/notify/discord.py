"""Discord REST transport for outbound embeds, replies and reactions."""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from ..errors import TransportError
from ..models import OutboundMessage

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def send(self, channel_id: str, message: OutboundMessage) -> str:
        ...

    def send_text(self, channel_id: str, text: str, reply_to: str | None = None) -> str:
        ...

    def react(self, channel_id: str, message_id: str, emoji: str) -> None:
        ...


class DiscordTransport:
    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float,
        user_agent: str,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._user_agent = user_agent
        self._http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bot {self._token}",
            "User-Agent": self._user_agent,
        }

    def _call(self, method: str, path: str, payload: Any | None = None) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = self._http.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"discord request failed: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(
                f"discord responded {response.status_code}: {response.text}"
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def send(self, channel_id: str, message: OutboundMessage) -> str:
        body = self._call(
            "POST",
            f"channels/{channel_id}/messages",
            {"embeds": [message.to_embed()]},
        )
        message_id = str((body or {}).get("id", ""))
        logger.debug("discord embed sent channel=%s id=%s", channel_id, message_id)
        return message_id

    def send_text(self, channel_id: str, text: str, reply_to: str | None = None) -> str:
        payload: dict[str, Any] = {"content": text}
        if reply_to:
            payload["message_reference"] = {
                "message_id": reply_to,
                "channel_id": channel_id,
            }
        body = self._call("POST", f"channels/{channel_id}/messages", payload)
        return str((body or {}).get("id", ""))

    def react(self, channel_id: str, message_id: str, emoji: str) -> None:
        self._call(
            "PUT",
            f"channels/{channel_id}/messages/{message_id}/reactions/{quote(emoji)}/@me",
        )


__all__ = ["DiscordTransport", "Transport"]
