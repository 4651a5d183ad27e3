"""
Telegram Bot API service for the chat interface.
Uses HTTPS requests to api.telegram.org; no heavy SDK required.
"""

import httpx
from typing import Dict, Any, Optional, List, Tuple
from paybot.schemas.core import InlineKeyboard
from paybot.utils.logger import get_logger
from paybot.utils.config import settings

logger = get_logger("telegram_service")


class TelegramService:
    """Telegram Bot API service: send/edit/delete messages, answer buttons, poll updates."""

    def __init__(self, token: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.token = (token if token is not None else settings.telegram_bot_token or "").strip()
        self._base_url = f"https://api.telegram.org/bot{self.token}" if self.token else ""
        self._transport = transport
        if not self.token:
            logger.warning("TELEGRAM_BOT_TOKEN not configured; Telegram chat interface disabled")

    def _enabled(self) -> bool:
        return bool(self._base_url)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _call(self, method: str, payload: Dict[str, Any], timeout: float = 30.0) -> Dict[str, Any]:
        if not self._enabled():
            return {"ok": False, "error": "Telegram bot token not configured"}
        try:
            async with self._client(timeout) as client:
                r = await client.post(f"{self._base_url}/{method}", json=payload)
                data = r.json()
                if not data.get("ok"):
                    logger.error(f"Telegram {method} failed: {data}")
                return data
        except Exception as e:
            logger.error(f"Telegram {method} error: {e}")
            return {"ok": False, "error": str(e)}

    async def send_message(self, chat_id: str, text: str,
                           reply_markup: Optional[InlineKeyboard] = None,
                           parse_mode: Optional[str] = None) -> Dict[str, Any]:
        """Send a text message, optionally with an inline keyboard."""
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text[:4096]}
        if reply_markup:
            payload["reply_markup"] = {"inline_keyboard": reply_markup}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return await self._call("sendMessage", payload)

    async def edit_message_text(self, chat_id: str, message_id: int, text: str,
                                reply_markup: Optional[InlineKeyboard] = None,
                                parse_mode: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "text": text[:4096]}
        if reply_markup:
            payload["reply_markup"] = {"inline_keyboard": reply_markup}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return await self._call("editMessageText", payload)

    async def delete_message(self, chat_id: str, message_id: int) -> bool:
        data = await self._call("deleteMessage", {"chat_id": chat_id, "message_id": message_id}, timeout=10.0)
        return bool(data.get("ok"))

    async def answer_callback_query(self, callback_query_id: str, text: Optional[str] = None) -> bool:
        """Stop the button's loading spinner."""
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text[:200]
        data = await self._call("answerCallbackQuery", payload, timeout=10.0)
        return bool(data.get("ok"))

    async def set_webhook(self, url: str, secret_token: str = "") -> bool:
        payload: Dict[str, Any] = {"url": url, "allowed_updates": ["message", "callback_query"]}
        if secret_token:
            payload["secret_token"] = secret_token
        data = await self._call("setWebhook", payload, timeout=10.0)
        ok = bool(data.get("ok"))
        if ok:
            logger.info(f"Telegram webhook set to {url}")
        return ok

    async def get_webhook_info(self) -> Dict[str, Any]:
        """Return getWebhookInfo result. If result.url is set, getUpdates will not receive updates."""
        if not self._enabled():
            return {}
        try:
            async with self._client(10.0) as client:
                r = await client.get(f"{self._base_url}/getWebhookInfo")
                data = r.json()
                return data.get("result", {}) if data.get("ok") else {}
        except Exception as e:
            logger.debug(f"Telegram getWebhookInfo error: {e}")
            return {}

    async def delete_webhook(self) -> bool:
        """Remove webhook so getUpdates (long polling) can receive updates. Returns True on success."""
        data = await self._call("deleteWebhook", {}, timeout=10.0)
        ok = bool(data.get("ok"))
        if ok:
            logger.info("Telegram webhook removed; long polling can receive updates.")
        return ok

    async def get_updates(
        self, offset: Optional[int] = None, timeout: int = 25
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Long polling: get updates from Telegram. Returns (list of updates, next_offset).
        Use next_offset for the next get_updates call so updates are not repeated.
        """
        if not self._enabled():
            return [], offset or 0
        try:
            params: Dict[str, Any] = {"timeout": timeout}
            if offset is not None:
                params["offset"] = offset
            async with self._client(timeout + 5) as client:
                r = await client.get(f"{self._base_url}/getUpdates", params=params)
                data = r.json()
                if not data.get("ok"):
                    logger.warning(f"Telegram getUpdates failed: {data}")
                    return [], offset or 0
                results = data.get("result") or []
                next_offset = offset or 0
                if results:
                    next_offset = max(u.get("update_id", 0) for u in results) + 1
                return results, next_offset
        except Exception as e:
            logger.debug(f"Telegram get_updates error: {e}")
            return [], offset or 0
