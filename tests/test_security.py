"""
Tests for password hashing and token handling.
"""
from datetime import timedelta

from core.security import (
    create_access_token,
    create_email_verification_token,
    create_refresh_token,
    decode_access_token,
    decode_email_verification_token,
    decode_refresh_token,
    get_password_hash,
    verify_password,
)


class TestPasswordHashing:

    def test_hash_is_not_the_password(self):
        hashed = get_password_hash("SecureP@ss123")
        assert hashed != "SecureP@ss123"
        assert verify_password("SecureP@ss123", hashed) is True

    def test_wrong_password_rejected(self):
        hashed = get_password_hash("SecureP@ss123")
        assert verify_password("SecureP@ss124", hashed) is False

    def test_over_72_bytes_rejected(self):
        hashed = get_password_hash("SecureP@ss123")
        assert verify_password("SecureP@ss123" + "x" * 80, hashed) is False


class TestTokens:

    def test_access_token_roundtrip(self):
        token = create_access_token({"sub": "user-1", "username": "alice"})
        payload = decode_access_token(token)
        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"

    def test_tokens_not_interchangeable(self):
        """An access token is not a refresh token and vice versa (different secrets and types)"""
        access = create_access_token({"sub": "user-1"})
        refresh = create_refresh_token({"sub": "user-1"})
        assert decode_refresh_token(access) is None
        assert decode_access_token(refresh) is None
        assert decode_email_verification_token(access) is None

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_garbage_rejected(self):
        assert decode_access_token("not-a-jwt") is None

    def test_missing_subject_rejected(self):
        assert decode_access_token(create_access_token({"username": "alice"})) is None

    def test_successive_refresh_tokens_differ(self):
        """Issued in the same second, two refresh tokens are still distinct"""
        assert create_refresh_token({"sub": "user-1"}) != create_refresh_token({"sub": "user-1"})

    def test_email_verification_token(self):
        token = create_email_verification_token("user-1", "alice@example.com")
        payload = decode_email_verification_token(token)
        assert payload["sub"] == "user-1"
        assert payload["email"] == "alice@example.com"
