"""Per-chat access/refresh token storage consulted by the API gateway."""

from typing import Dict, Optional
from paybot.schemas.core import AuthTokens, TokenRecord
from paybot.utils.logger import get_logger

logger = get_logger("token_registry")


class TokenRegistry:
    """In-memory chat id -> TokenRecord mapping.

    Setters are independent: an access token may exist without a refresh token or
    an expiry. Expiry is informational only; invalid tokens are discovered when
    the API answers 401.
    """

    def __init__(self):
        self._records: Dict[str, TokenRecord] = {}

    def _record(self, chat_id: str) -> TokenRecord:
        record = self._records.get(chat_id)
        if record is None:
            record = TokenRecord()
            self._records[chat_id] = record
        return record

    def set_token(self, chat_id: str, token: str) -> None:
        self._record(chat_id).access_token = token

    def set_refresh_token(self, chat_id: str, token: str) -> None:
        self._record(chat_id).refresh_token = token

    def set_expiry(self, chat_id: str, expires_at: int) -> None:
        self._record(chat_id).expires_at = expires_at

    def store_tokens(self, chat_id: str, tokens: AuthTokens) -> None:
        """Store an access token and whatever refresh token/expiry came with it."""
        self.set_token(chat_id, tokens.access_token)
        if tokens.refresh_token:
            self.set_refresh_token(chat_id, tokens.refresh_token)
        if tokens.expires_at is not None:
            self.set_expiry(chat_id, tokens.expires_at)

    def get_token(self, chat_id: Optional[str]) -> Optional[str]:
        if not chat_id:
            return None
        record = self._records.get(chat_id)
        return record.access_token if record else None

    def get_refresh_token(self, chat_id: Optional[str]) -> Optional[str]:
        if not chat_id:
            return None
        record = self._records.get(chat_id)
        return record.refresh_token if record else None

    def get_expiry(self, chat_id: Optional[str]) -> Optional[int]:
        if not chat_id:
            return None
        record = self._records.get(chat_id)
        return record.expires_at if record else None

    def clear_token(self, chat_id: str) -> None:
        """Drop access token, refresh token and expiry together."""
        if self._records.pop(chat_id, None) is not None:
            logger.info(f"Cleared tokens for chat {chat_id}")
