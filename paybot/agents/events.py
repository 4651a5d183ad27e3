"""
Inbound event normalization.

Every Telegram update becomes one of three events before dispatch:
``Command`` (text starting with ``/``), ``FreeText`` or ``Action`` (a button
press carrying ``tag:arg`` callback data). ``dispatch_key`` is the second half of
the ``(state, kind)`` key the message processor routes on.
"""

from typing import Any, Dict, Optional, Tuple, Union
from pydantic import BaseModel
from paybot.utils.logger import get_logger

logger = get_logger("events")


class FreeText(BaseModel):
    chat_id: str
    text: str
    message_id: Optional[int] = None

    @property
    def dispatch_key(self) -> str:
        return "text"


class Command(BaseModel):
    chat_id: str
    name: str
    args: str = ""
    message_id: Optional[int] = None

    @property
    def dispatch_key(self) -> str:
        return f"/{self.name}"


class Action(BaseModel):
    chat_id: str
    tag: str
    arg: str = ""
    callback_id: Optional[str] = None
    message_id: Optional[int] = None

    @property
    def dispatch_key(self) -> str:
        return self.tag


InboundEvent = Union[FreeText, Command, Action]


def parse_callback_data(data: str) -> Tuple[str, str]:
    """``"network:SOLANA"`` -> ``("network", "SOLANA")``; a bare tag has an empty arg."""
    tag, _, arg = (data or "").partition(":")
    return tag.strip(), arg.strip()


def parse_command(text: str) -> Tuple[str, str]:
    """``"/login@MyBot foo"`` -> ``("login", "foo")``."""
    head, _, args = text.strip().partition(" ")
    name = head[1:].split("@", 1)[0].lower()
    return name, args.strip()


def normalize_update(update: Dict[str, Any]) -> Optional[InboundEvent]:
    """Convert a raw Telegram update into an inbound event, or None if irrelevant."""
    callback = update.get("callback_query")
    if callback:
        message = callback.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        if chat_id is None:
            chat_id = (callback.get("from") or {}).get("id")
        if chat_id is None:
            return None
        tag, arg = parse_callback_data(callback.get("data") or "")
        return Action(
            chat_id=str(chat_id),
            tag=tag,
            arg=arg,
            callback_id=callback.get("id"),
            message_id=message.get("message_id"),
        )

    message = update.get("message") or update.get("edited_message")
    if not message:
        return None
    chat_id = (message.get("chat") or {}).get("id")
    if chat_id is None:
        return None
    text = (message.get("text") or "").strip()
    if not text:
        logger.debug(f"Ignoring non-text message in chat {chat_id}")
        return None
    if text.startswith("/"):
        name, args = parse_command(text)
        if name:
            return Command(chat_id=str(chat_id), name=name, args=args, message_id=message.get("message_id"))
    return FreeText(chat_id=str(chat_id), text=text, message_id=message.get("message_id"))
