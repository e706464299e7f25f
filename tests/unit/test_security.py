"""Tests for invitation token helpers."""

import pytest

from src.taskcore.core.security import generate_token, hash_token

pytestmark = pytest.mark.unit


class TestInvitationTokens:
    """Tokens are handed out once and stored only as hashes."""

    def test_tokens_are_unique(self):
        tokens = {generate_token() for _ in range(50)}
        assert len(tokens) == 50

    def test_tokens_are_url_safe(self):
        token = generate_token()
        assert len(token) >= 40
        assert all(ch.isalnum() or ch in "-_" for ch in token)

    def test_hash_is_stable_hex_digest(self):
        token = "invite-me"
        assert hash_token(token) == hash_token(token)
        assert len(hash_token(token)) == 64
        assert hash_token(token) != token

    def test_different_tokens_hash_differently(self):
        assert hash_token(generate_token()) != hash_token(generate_token())
