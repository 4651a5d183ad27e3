"""
Session Management Module
Keeps the per-chat conversation session and its flow-scoped scratch data in memory.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional
from paybot.schemas.core import BotState, Session
from paybot.utils.logger import get_logger

logger = get_logger("session_manager")


class SessionStore:
    """In-memory chat id -> Session mapping.

    A session exists as soon as it is referenced. Nothing is persisted and nothing
    is evicted; sessions live as long as the process. Writes for the same chat are
    last-write-wins: there is no lock, handlers are assumed to run one at a time
    per chat.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get_session(self, chat_id: str) -> Session:
        """Return the chat's session, creating a default one on first access."""
        session = self._sessions.get(chat_id)
        if session is None:
            session = Session(chat_id=chat_id)
            self._sessions[chat_id] = session
            logger.debug(f"Created session for chat {chat_id}")
        return session

    def set_session(self, chat_id: str, /, **fields: Any) -> Session:
        """Merge fields into the session and stamp the last action time. The chat id never changes."""
        fields.pop("chat_id", None)
        fields["last_action"] = datetime.now(timezone.utc)
        session = self.get_session(chat_id).model_copy(update=fields)
        self._sessions[chat_id] = session
        return session

    def is_authenticated(self, chat_id: str) -> bool:
        return bool(self.get_session(chat_id).organization_id)

    def clear_session(self, chat_id: str) -> Session:
        """Reset to the default record, keeping only the chat id."""
        session = Session(chat_id=chat_id)
        self._sessions[chat_id] = session
        logger.debug(f"Cleared session for chat {chat_id}")
        return session

    def update_state(self, chat_id: str, state: BotState) -> Session:
        return self.set_session(chat_id, current_state=state)

    def get_state(self, chat_id: str) -> BotState:
        return self.get_session(chat_id).current_state or BotState.START

    # Scratch data

    def set_temp_data(self, chat_id: str, key: str, value: Any) -> Session:
        temp_data = dict(self.get_session(chat_id).temp_data)
        temp_data[key] = value
        return self.set_session(chat_id, temp_data=temp_data)

    def get_temp_data(self, chat_id: str, key: str) -> Optional[Any]:
        return self.get_session(chat_id).temp_data.get(key)

    def has_temp_data(self, chat_id: str, key: str) -> bool:
        """True once the key was collected, even if its value is empty."""
        return key in self.get_session(chat_id).temp_data

    def clear_temp_data(self, chat_id: str) -> Session:
        """Drop every scratch field without touching the rest of the session."""
        return self.set_session(chat_id, temp_data={})
