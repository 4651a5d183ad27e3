"""
Unit tests for the in-memory session store.
"""

from paybot.schemas.core import BotState
from paybot.utils.session_manager import SessionStore


class TestSessionDefaults:

    def test_unknown_chat_gets_default_session(self):
        store = SessionStore()
        session = store.get_session("chat-1")
        assert session.chat_id == "chat-1"
        assert session.current_state == BotState.START
        assert session.temp_data == {}
        assert session.email is None
        assert session.organization_id is None

    def test_repeated_reads_are_idempotent(self):
        store = SessionStore()
        first = store.get_session("chat-1")
        second = store.get_session("chat-1")
        assert first == second
        assert len(store) == 1

    def test_get_state_defaults_to_start(self):
        assert SessionStore().get_state("new") == BotState.START


class TestSessionWrites:

    def test_set_session_merges_fields(self):
        store = SessionStore()
        store.set_session("c", email="a@b.co")
        store.set_session("c", current_state=BotState.AUTH_OTP)
        session = store.get_session("c")
        assert session.email == "a@b.co"
        assert session.current_state == BotState.AUTH_OTP

    def test_set_session_stamps_last_action(self):
        store = SessionStore()
        before = store.get_session("c").last_action
        after = store.set_session("c", email="a@b.co").last_action
        assert after >= before

    def test_set_session_never_changes_chat_id(self):
        store = SessionStore()
        session = store.set_session("c", chat_id="other")
        assert session.chat_id == "c"
        assert store.get_session("c").chat_id == "c"
        assert len(store) == 1

    def test_last_action_is_timezone_aware(self):
        session = SessionStore().set_session("c", email="a@b.co")
        assert session.last_action.tzinfo is not None

    def test_update_state(self):
        store = SessionStore()
        store.update_state("c", BotState.TRANSFER_MENU)
        assert store.get_state("c") == BotState.TRANSFER_MENU


class TestAuthentication:

    def test_organization_id_marks_authenticated(self):
        store = SessionStore()
        assert store.is_authenticated("c") is False
        store.set_session("c", organization_id="org-1")
        assert store.is_authenticated("c") is True

    def test_empty_organization_id_is_not_authenticated(self):
        store = SessionStore()
        store.set_session("c", organization_id="")
        assert store.is_authenticated("c") is False

    def test_clear_session_logs_out_and_keeps_key(self):
        store = SessionStore()
        store.set_session("c", email="a@b.co", organization_id="org-1", current_state=BotState.MAIN_MENU)
        store.set_temp_data("c", "amount", 5.0)

        store.clear_session("c")

        assert store.is_authenticated("c") is False
        session = store.get_session("c")
        assert session.chat_id == "c"
        assert session.current_state == BotState.START
        assert session.temp_data == {}
        assert session.email is None


class TestScratchData:

    def test_set_and_get(self):
        store = SessionStore()
        store.set_temp_data("c", "email", "x@y.co")
        assert store.get_temp_data("c", "email") == "x@y.co"
        assert store.get_temp_data("c", "missing") is None

    def test_clear_temp_data_keeps_other_fields(self):
        store = SessionStore()
        store.set_session("c", email="a@b.co", organization_id="org-1", current_state=BotState.TRANSFER_BANK)
        store.set_temp_data("c", "name", "Ada")
        store.set_temp_data("c", "account_number", "12345678")

        store.clear_temp_data("c")

        session = store.get_session("c")
        assert session.temp_data == {}
        assert session.email == "a@b.co"
        assert session.organization_id == "org-1"
        assert session.current_state == BotState.TRANSFER_BANK

    def test_has_temp_data_sees_empty_values(self):
        store = SessionStore()
        assert store.has_temp_data("c", "message") is False
        store.set_temp_data("c", "message", "")
        assert store.has_temp_data("c", "message") is True
        assert store.get_temp_data("c", "message") == ""

    def test_scratch_is_per_chat(self):
        store = SessionStore()
        store.set_temp_data("a", "amount", 1.0)
        assert store.get_temp_data("b", "amount") is None
