"""
Shared test fixtures and configuration.
"""

import os

# Set test environment variables before importing app modules
os.environ["TELEGRAM_BOT_TOKEN"] = "123456:test-bot-token"
os.environ["TELEGRAM_WEBHOOK_SECRET"] = "webhook-secret"
os.environ["NOTIFICATIONS_SECRET"] = "notify-secret"
os.environ["WEBHOOK_URL"] = ""
os.environ["API_BASE_URL"] = "https://payments.test/api"
os.environ["LOG_FILE"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Any, Callable, Dict, List, Tuple, Union
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from paybot.agents.bot_context import build_bot_context
from paybot.agents.message_processor import MessageProcessor
from paybot.utils.config import settings

API_PREFIX = "/api"

Reply = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response], Exception]


class FakePaymentsAPI:
    """Scripted payments API behind an ``httpx.MockTransport``.

    Each ``(method, path)`` holds a queue of replies. The last reply repeats once
    the queue is down to one entry. Unscripted paths answer 404.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.calls: List[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Reply) -> "FakePaymentsAPI":
        self.routes.setdefault((method.upper(), path), []).extend(replies)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(API_PREFIX):
            path = path[len(API_PREFIX):]
        self.calls.append(request)
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json={"message": "Not found"})
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        status_code, body = reply
        return httpx.Response(status_code, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [
            call for call in self.calls
            if call.method == method.upper() and call.url.path == API_PREFIX + path
        ]


def make_messenger() -> MagicMock:
    messenger = MagicMock()
    messenger.send_message = AsyncMock(return_value={"ok": True, "result": {"message_id": 500}})
    messenger.edit_message_text = AsyncMock(return_value={"ok": True, "result": {"message_id": 500}})
    messenger.delete_message = AsyncMock(return_value=True)
    messenger.answer_callback_query = AsyncMock(return_value=True)
    return messenger


def sent_texts(messenger: MagicMock) -> List[str]:
    """Every text the bot sent or edited, in order."""
    texts = [c.args[1] for c in messenger.send_message.call_args_list]
    texts += [c.args[2] for c in messenger.edit_message_text.call_args_list]
    return texts


def text_update(chat_id: int, text: str, update_id: int = 1) -> Dict[str, Any]:
    return {
        "update_id": update_id,
        "message": {"message_id": 10, "chat": {"id": chat_id, "type": "private"}, "text": text},
    }


def callback_update(chat_id: int, data: str, message_id: int = 77, update_id: int = 2) -> Dict[str, Any]:
    return {
        "update_id": update_id,
        "callback_query": {
            "id": f"cb-{update_id}",
            "from": {"id": chat_id},
            "message": {"message_id": message_id, "chat": {"id": chat_id}},
            "data": data,
        },
    }


@pytest.fixture
def fake_api() -> FakePaymentsAPI:
    return FakePaymentsAPI()


@pytest.fixture
def messenger() -> MagicMock:
    return make_messenger()


@pytest.fixture
def app_settings():
    return settings.model_copy()


@pytest.fixture
def bot(app_settings, fake_api, messenger):
    return build_bot_context(app_settings, messenger=messenger, transport=fake_api.transport)


@pytest.fixture
def processor(bot) -> MessageProcessor:
    return MessageProcessor(bot)


def login_chat(bot, chat_id: str, organization_id: str = "org-1", token: str = "tok-1") -> None:
    """Put a chat straight into the logged-in main menu."""
    from paybot.schemas.core import BotState

    bot.sessions.set_session(
        chat_id,
        email="user@example.com",
        organization_id=organization_id,
        current_state=BotState.MAIN_MENU,
    )
    bot.tokens.set_token(chat_id, token)
