from __future__ import annotations
from typing import Any
import httpx
from app.config import settings


class TelegramError(Exception):
    """Bot API answered with ok=false."""

    def __init__(self, method: str, description: str, error_code: int | None = None):
        super().__init__(f"{method}: {description}")
        self.method = method
        self.description = description
        self.error_code = error_code


class TelegramClient:
    """Thin async wrapper over the Telegram Bot API methods the bot needs."""

    def __init__(self, token: str, *, base_url: str = "https://api.telegram.org", client: httpx.AsyncClient | None = None):
        self._base = f"{base_url.rstrip('/')}/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))

    async def _call(self, method: str, payload: dict[str, Any]) -> Any:
        r = await self._client.post(f"{self._base}/{method}", json=payload)
        try:
            data = r.json()
        except ValueError:
            r.raise_for_status()
            raise TelegramError(method, "non-JSON response", r.status_code)
        if not data.get("ok"):
            raise TelegramError(method, data.get("description") or "unknown error", data.get("error_code"))
        return data.get("result")

    async def send_message(
        self,
        chat_id: int | str,
        text: str,
        *,
        reply_markup: dict | None = None,
        parse_mode: str | None = "HTML",
    ) -> Any:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup:
            payload["reply_markup"] = reply_markup
        return await self._call("sendMessage", payload)

    async def send_media_group(self, chat_id: int | str, media: list[dict], *, disable_notification: bool = True) -> Any:
        return await self._call("sendMediaGroup", {
            "chat_id": chat_id,
            "media": media,
            "disable_notification": disable_notification,
        })

    async def set_webhook(self, url: str, *, secret_token: str | None = None) -> Any:
        payload: dict[str, Any] = {"url": url, "allowed_updates": ["message"]}
        if secret_token:
            payload["secret_token"] = secret_token
        return await self._call("setWebhook", payload)

    async def aclose(self) -> None:
        await self._client.aclose()


_transport: TelegramClient | None = None

def get_transport() -> TelegramClient:
    # Process-wide client, created on first use
    global _transport
    if _transport is None:
        _transport = TelegramClient(settings.telegram_bot_token, base_url=settings.telegram_api_base)
    return _transport

async def close_transport() -> None:
    global _transport
    if _transport is not None:
        await _transport.aclose()
        _transport = None
