"""
Unit tests for inbound update normalization.
"""

from conftest import callback_update, text_update
from paybot.agents.events import Action, Command, FreeText, normalize_update, parse_callback_data


class TestNormalizeUpdate:

    def test_free_text(self):
        event = normalize_update(text_update(42, "  hello  "))
        assert isinstance(event, FreeText)
        assert event.chat_id == "42"
        assert event.text == "hello"
        assert event.dispatch_key == "text"

    def test_command_with_bot_suffix_and_args(self):
        event = normalize_update(text_update(42, "/Login@PayBot now"))
        assert isinstance(event, Command)
        assert event.name == "login"
        assert event.args == "now"
        assert event.dispatch_key == "/login"

    def test_button_press(self):
        event = normalize_update(callback_update(42, "network:SOLANA", message_id=9, update_id=3))
        assert isinstance(event, Action)
        assert event.chat_id == "42"
        assert event.tag == "network"
        assert event.arg == "SOLANA"
        assert event.callback_id == "cb-3"
        assert event.message_id == 9
        assert event.dispatch_key == "network"

    def test_callback_without_message_uses_sender(self):
        update = {"update_id": 5, "callback_query": {"id": "q", "from": {"id": 7}, "data": "cancel"}}
        event = normalize_update(update)
        assert event.chat_id == "7"
        assert event.tag == "cancel"
        assert event.arg == ""

    def test_irrelevant_updates(self):
        assert normalize_update({"update_id": 1}) is None
        assert normalize_update({"update_id": 1, "message": {"chat": {"id": 1}, "photo": []}}) is None
        assert normalize_update({"update_id": 1, "message": {"text": "no chat"}}) is None

    def test_edited_message_counts_as_text(self):
        update = {"update_id": 1, "edited_message": {"chat": {"id": 3}, "text": "fixed"}}
        assert isinstance(normalize_update(update), FreeText)


class TestCallbackData:

    def test_tag_and_arg(self):
        assert parse_callback_data("confirm:bank") == ("confirm", "bank")

    def test_arg_may_contain_colons(self):
        assert parse_callback_data("wallet_default:a:b") == ("wallet_default", "a:b")

    def test_bare_tag(self):
        assert parse_callback_data("skip") == ("skip", "")
