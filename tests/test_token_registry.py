"""
Unit tests for the per-chat token registry.
"""

from paybot.schemas.core import AuthTokens
from paybot.utils.token_registry import TokenRegistry


class TestTokenRegistry:

    def test_unknown_or_empty_chat_has_no_token(self):
        tokens = TokenRegistry()
        assert tokens.get_token("nobody") is None
        assert tokens.get_token("") is None
        assert tokens.get_token(None) is None

    def test_setters_are_independent(self):
        tokens = TokenRegistry()
        tokens.set_token("c", "access")
        assert tokens.get_token("c") == "access"
        assert tokens.get_refresh_token("c") is None
        assert tokens.get_expiry("c") is None

        tokens.set_refresh_token("d", "refresh-only")
        assert tokens.get_token("d") is None
        assert tokens.get_refresh_token("d") == "refresh-only"

    def test_clear_token_removes_every_field(self):
        tokens = TokenRegistry()
        tokens.set_token("c", "access")
        tokens.set_refresh_token("c", "refresh")
        tokens.set_expiry("c", 1_700_000_000_000)

        tokens.clear_token("c")

        assert tokens.get_token("c") is None
        assert tokens.get_refresh_token("c") is None
        assert tokens.get_expiry("c") is None

    def test_clear_unknown_chat_is_a_no_op(self):
        TokenRegistry().clear_token("ghost")

    def test_store_tokens_keeps_existing_refresh_token(self):
        tokens = TokenRegistry()
        tokens.store_tokens("c", AuthTokens(access_token="a1", refresh_token="r1", expires_at=10))
        tokens.store_tokens("c", AuthTokens(access_token="a2"))

        assert tokens.get_token("c") == "a2"
        assert tokens.get_refresh_token("c") == "r1"
        assert tokens.get_expiry("c") == 10
