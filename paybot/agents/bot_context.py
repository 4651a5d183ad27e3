"""
Process-wide bot state and the per-chat reply helper handed to handlers.

``build_bot_context`` wires the in-memory stores to the services once at process
start. Nothing is torn down: every store is volatile and lives as long as the
process.
"""

from typing import Any, Dict, Optional
import httpx
from paybot.schemas.core import BotState, InlineKeyboard
from paybot.services.api_gateway import ApiGateway
from paybot.services.auth_service import AuthService
from paybot.services.notification_service import NotificationService
from paybot.services.telegram_service import TelegramService
from paybot.services.transfer_service import TransferService
from paybot.services.wallet_service import WalletService
from paybot.utils.config import Settings, settings as default_settings
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import redact_sensitive
from paybot.utils.session_manager import SessionStore
from paybot.utils.token_registry import TokenRegistry

logger = get_logger("bot_context")


class BotContext:
    """Explicit container for the stores and services shared by every handler."""

    def __init__(self, settings: Settings, sessions: SessionStore, tokens: TokenRegistry,
                 gateway: ApiGateway, auth: AuthService, wallets: WalletService,
                 transfers: TransferService, notifications: NotificationService,
                 messenger: TelegramService):
        self.settings = settings
        self.sessions = sessions
        self.tokens = tokens
        self.gateway = gateway
        self.auth = auth
        self.wallets = wallets
        self.transfers = transfers
        self.notifications = notifications
        self.messenger = messenger


def build_bot_context(settings: Optional[Settings] = None,
                      messenger: Optional[TelegramService] = None,
                      transport: Optional[httpx.AsyncBaseTransport] = None) -> BotContext:
    """Create empty stores and the services that use them.

    ``transport`` is handed to the payments API client only; tests pass an
    ``httpx.MockTransport`` here.
    """
    settings = settings or default_settings
    sessions = SessionStore()
    tokens = TokenRegistry()
    gateway = ApiGateway(
        tokens,
        base_url=settings.api_base_url,
        timeout=settings.api_timeout_seconds,
        transport=transport,
    )
    messenger = messenger or TelegramService(settings.telegram_bot_token)
    context = BotContext(
        settings=settings,
        sessions=sessions,
        tokens=tokens,
        gateway=gateway,
        auth=AuthService(gateway, tokens, settings.ambiguous_response_policy),
        wallets=WalletService(gateway),
        transfers=TransferService(gateway),
        notifications=NotificationService(gateway, messenger),
        messenger=messenger,
    )
    logger.info(f"Bot context ready (API: {settings.api_base_url})")
    return context


class ChatContext:
    """One inbound event's view of the bot: the chat it came from plus reply helpers."""

    def __init__(self, bot: BotContext, chat_id: str, message_id: Optional[int] = None):
        self.bot = bot
        self.chat_id = chat_id
        self.message_id = message_id

    @property
    def session(self):
        return self.bot.sessions.get_session(self.chat_id)

    @property
    def state(self) -> BotState:
        return self.bot.sessions.get_state(self.chat_id)

    def set_state(self, state: BotState) -> None:
        self.bot.sessions.update_state(self.chat_id, state)

    @property
    def is_authenticated(self) -> bool:
        return self.bot.sessions.is_authenticated(self.chat_id)

    async def reply(self, text: str, keyboard: Optional[InlineKeyboard] = None,
                    markdown: bool = False) -> Optional[int]:
        """Send a message to the chat with tokens redacted. Returns the new message id when Telegram accepted it."""
        result: Dict[str, Any] = await self.bot.messenger.send_message(
            self.chat_id,
            redact_sensitive(text, opaque=False),
            reply_markup=keyboard,
            parse_mode="Markdown" if markdown else None,
        )
        if not result.get("ok"):
            return None
        return (result.get("result") or {}).get("message_id")

    async def edit(self, message_id: Optional[int], text: str,
                   keyboard: Optional[InlineKeyboard] = None, markdown: bool = False) -> None:
        """Edit an earlier message, or send a new one when there is nothing to edit."""
        if message_id is None:
            await self.reply(text, keyboard, markdown)
            return
        result = await self.bot.messenger.edit_message_text(
            self.chat_id,
            message_id,
            redact_sensitive(text, opaque=False),
            reply_markup=keyboard,
            parse_mode="Markdown" if markdown else None,
        )
        if not result.get("ok"):
            await self.reply(text, keyboard, markdown)

    async def delete(self, message_id: Optional[int]) -> None:
        if message_id is not None:
            await self.bot.messenger.delete_message(self.chat_id, message_id)

    async def loading(self, text: str) -> Optional[int]:
        """Post a transient progress message; pass its id to ``delete`` afterwards."""
        return await self.reply(text)
