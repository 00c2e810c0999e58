"""
Telegram Bot API client for delivering agenda messages.
"""

from typing import Any

import httpx

from core.config import TELEGRAM_API_BASE_URL, TelegramConfig
from core.http import create_client, request_with_retry
from core.logging import get_logger

logger = get_logger(__name__)


class TelegramError(Exception):
    """Raised when a Bot API call fails."""


class TelegramService:
    """Thin wrapper over the Bot API methods the agenda needs."""

    def __init__(self, config: TelegramConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self.base_url = f"{TELEGRAM_API_BASE_URL}/bot{config.bot_token}"
        self._client = client or create_client()

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TelegramService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def call(
        self, method: str, payload: dict | None = None, timeout: float | None = None
    ) -> Any:
        """
        Call a Bot API method and return its ``result``.

        Raises:
            TelegramError: on transport errors or a non-ok reply
        """
        kwargs = {"json": payload or {}}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await request_with_retry(
                self._client, "POST", f"{self.base_url}/{method}", **kwargs
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TelegramError(f"Telegram {method} failed: {e}") from e

        if not data.get("ok"):
            description = data.get("description") or response.reason_phrase
            raise TelegramError(f"Telegram API error: {description}")
        return data.get("result")

    async def send_message(
        self,
        text: str,
        chat_id: int | str | None = None,
        reply_markup: dict | None = None,
    ) -> bool:
        """Send a text message, to the configured chat by default."""
        payload = {
            "chat_id": chat_id if chat_id is not None else self.config.chat_id,
            "text": text,
        }
        if reply_markup:
            payload["reply_markup"] = reply_markup

        await self.call("sendMessage", payload)
        logger.info("Sent Telegram message", chat_id=payload["chat_id"], length=len(text))
        return True

    async def test_connection(self) -> bool:
        """Check the bot token with getMe."""
        try:
            await self.call("getMe")
        except TelegramError:
            return False
        return True
