"""Telegram Bot API transport (httpx implementation of ChannelTransport)."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

from ...core.exceptions import TransportError

logger = logging.getLogger(__name__)

_NUMERIC_CHAT_ID = re.compile(r"^-?\d+$")


def normalize_chat_id(channel_id: str) -> Union[int, str]:
    """Numeric ids ("-100123...") are sent as integers, @usernames as strings."""
    channel_id = str(channel_id).strip()
    return int(channel_id) if _NUMERIC_CHAT_ID.match(channel_id) else channel_id


class TelegramBotApi:
    """Single-call wrapper around the Bot API methods used for backups.

    Each send returns the new message id. Failed calls raise TransportError;
    retry and pacing belong to TransportClient.
    """

    def __init__(
        self,
        bot_token: str,
        channel_id: str,
        *,
        base_url: str = "https://api.telegram.org",
        timeout: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.channel_id = normalize_chat_id(channel_id)
        self._api_url = f"{base_url.rstrip('/')}/bot{bot_token}"
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=15.0),
            limits=httpx.Limits(max_keepalive_connections=5),
        )

    async def __aenter__(self) -> "TelegramBotApi":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Clean up resources."""
        if self._owns_client:
            await self.http_client.aclose()

    async def _call(
        self,
        method: str,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        payload = {k: v for k, v in (data or {}).items() if v is not None}
        try:
            response = await self.http_client.post(f"{self._api_url}/{method}", data=payload, files=files)
        except httpx.HTTPError as e:
            # Never log the URL: it embeds the bot token
            raise TransportError(f"{method}: {type(e).__name__}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            raise TransportError(
                f"{method}: HTTP {response.status_code} with non-JSON body",
                error_code=response.status_code,
            )

        if not body.get("ok"):
            params = body.get("parameters") or {}
            raise TransportError(
                f"{method}: {body.get('description') or 'Unknown error'}",
                error_code=body.get("error_code", response.status_code),
                retry_after=params.get("retry_after"),
            )
        return body.get("result")

    async def _send_file(self, method: str, field: str, path: Path, caption: Optional[str]) -> int:
        path = Path(path)
        # Opened per call: each retry reads the file from the start
        with path.open("rb") as f:
            result = await self._call(
                method,
                data={"chat_id": self.channel_id, "caption": caption},
                files={field: (path.name, f)},
            )
        return int(result["message_id"])

    async def send_message(self, text: str, parse_mode: Optional[str] = None) -> int:
        result = await self._call(
            "sendMessage",
            data={
                "chat_id": self.channel_id,
                "text": text,
                "parse_mode": parse_mode,
                "disable_web_page_preview": "true" if parse_mode == "HTML" else None,
            },
        )
        return int(result["message_id"])

    async def send_photo(self, path: Path, caption: Optional[str] = None) -> int:
        return await self._send_file("sendPhoto", "photo", path, caption)

    async def send_video(self, path: Path, caption: Optional[str] = None) -> int:
        return await self._send_file("sendVideo", "video", path, caption)

    async def send_document(self, path: Path, caption: Optional[str] = None) -> int:
        return await self._send_file("sendDocument", "document", path, caption)

    async def send_document_bytes(self, data: bytes, filename: str, caption: Optional[str] = None) -> int:
        result = await self._call(
            "sendDocument",
            data={"chat_id": self.channel_id, "caption": caption},
            files={"document": (filename, data)},
        )
        return int(result["message_id"])

    async def get_me(self) -> Dict[str, Any]:
        return await self._call("getMe")

    async def get_chat(self) -> Dict[str, Any]:
        return await self._call("getChat", data={"chat_id": self.channel_id})

    def message_link(self, message_id: int) -> str:
        raw = str(self.channel_id)
        if raw.startswith("@"):
            return f"https://t.me/{raw[1:]}/{message_id}"
        stripped = raw[4:] if raw.startswith("-100") else raw.lstrip("-")
        return f"https://t.me/c/{stripped}/{message_id}"
