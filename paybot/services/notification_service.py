"""
Deposit notifications.

Each logged-in organization has a private push channel. This service remembers
which chats want that organization's events. It authorizes channel
subscriptions against the payments API and turns ``deposit`` events into chat
messages. The socket client that delivers events is external; it (or a relay)
hands events to ``handle_event``.
"""

from typing import Any, Dict, List, Optional, Set
from pydantic import ValidationError
from paybot.schemas.core import ApiResult, DepositNotification
from paybot.services.api_gateway import ApiGateway
from paybot.services.telegram_service import TelegramService
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import escape_markdown, format_timestamp

logger = get_logger("notification_service")

DEPOSIT_EVENT = "deposit"


class NotificationService:
    """Organization -> subscribed chats, plus deposit fan-out."""

    CHANNEL_PREFIX = "private-org-"

    def __init__(self, gateway: ApiGateway, messenger: TelegramService):
        self.gateway = gateway
        self.messenger = messenger
        self._subscriptions: Dict[str, Set[str]] = {}

    @classmethod
    def channel_name(cls, organization_id: str) -> str:
        return f"{cls.CHANNEL_PREFIX}{organization_id}"

    def subscribe(self, organization_id: str, chat_id: str) -> str:
        chats = self._subscriptions.setdefault(organization_id, set())
        if chat_id not in chats:
            chats.add(chat_id)
            logger.info(f"Chat {chat_id} subscribed to {self.channel_name(organization_id)}")
        return self.channel_name(organization_id)

    def unsubscribe(self, organization_id: Optional[str], chat_id: str) -> None:
        if not organization_id:
            return
        chats = self._subscriptions.get(organization_id)
        if not chats:
            return
        chats.discard(chat_id)
        if not chats:
            del self._subscriptions[organization_id]
            logger.info(f"Disconnected {self.channel_name(organization_id)}")

    def subscribers(self, organization_id: str) -> List[str]:
        return sorted(self._subscriptions.get(organization_id, set()))

    def disconnect_all(self) -> None:
        count = len(self._subscriptions)
        self._subscriptions.clear()
        if count:
            logger.info(f"Disconnected {count} notification channel(s)")

    async def authorize_channel(self, chat_id: str, socket_id: str, channel_name: str) -> ApiResult:
        """Ask the payments API to sign a private channel subscription."""
        return await self.gateway.request(
            "POST",
            "/notifications/auth",
            {"socket_id": socket_id, "channel_name": channel_name},
            chat_id=chat_id,
        )

    @staticmethod
    def format_deposit_message(deposit: DepositNotification) -> str:
        message = (
            f"💰 *New Deposit Received*\n\n"
            f"Amount: {deposit.amount:g} {escape_markdown(deposit.asset or 'USDC')}\n"
            f"Network: {escape_markdown(deposit.network or 'Unknown')}\n"
            f"Transaction Hash: `{deposit.tx_hash or 'N/A'}`\n"
        )
        if deposit.timestamp:
            message += f"Time: {format_timestamp(deposit.timestamp)}"
        return message

    async def handle_event(self, organization_id: str, event: str, data: Dict[str, Any]) -> int:
        """Deliver an organization event to its subscribed chats. Returns deliveries made."""
        if event != DEPOSIT_EVENT:
            logger.debug(f"Ignoring '{event}' event for organization {organization_id}")
            return 0

        chats = self.subscribers(organization_id)
        if not chats:
            logger.info(f"Deposit for organization {organization_id} has no subscribed chats")
            return 0

        try:
            deposit = DepositNotification.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed deposit event for organization {organization_id}: {e}")
            return 0

        text = self.format_deposit_message(deposit)
        delivered = 0
        for chat_id in chats:
            result = await self.messenger.send_message(chat_id, text, parse_mode="Markdown")
            if result.get("ok"):
                delivered += 1
            else:
                logger.error(f"Error sending deposit notification to chat {chat_id}")
        return delivered
