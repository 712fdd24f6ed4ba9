# tests for auth service: password hashing and jwt tokens
# unit tests for app/services/auth_service.py

from datetime import timedelta

from app.services.auth_service import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    issue_tokens,
)


class TestPasswordHashing:
    """password hashing and verification"""

    def test_hash_password_returns_string(self):
        hashed = hash_password("test_password")
        assert isinstance(hashed, str)
        assert hashed != "test_password"

    def test_hash_password_different_each_time(self):
        """bcrypt salts should make each hash unique"""
        h1 = hash_password("same_password")
        h2 = hash_password("same_password")
        assert h1 != h2

    def test_verify_password_correct(self):
        hashed = hash_password("correct_password")
        assert verify_password("correct_password", hashed) is True

    def test_verify_password_wrong(self):
        hashed = hash_password("correct_password")
        assert verify_password("wrong_password", hashed) is False


class TestJWTTokens:
    """jwt token creation and validation"""

    def test_decode_access_token(self):
        token = create_access_token({"sub": "user123"})
        payload = decode_token(token)
        assert payload is not None
        assert payload["sub"] == "user123"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_create_refresh_token(self):
        token = create_refresh_token({"sub": "user123"})
        payload = decode_token(token)
        assert payload["type"] == "refresh"
        assert payload["sub"] == "user123"

    def test_expected_type_mismatch(self):
        token = create_refresh_token({"sub": "user123"})
        assert decode_token(token, expected_type="access") is None
        assert decode_token(token, expected_type="refresh") is not None

    def test_decode_invalid_token(self):
        assert decode_token("invalid.token.here") is None

    def test_decode_empty_token(self):
        assert decode_token("") is None

    def test_expired_token(self):
        token = create_access_token({"sub": "user1"}, expires_delta=timedelta(seconds=-5))
        assert decode_token(token) is None

    def test_custom_expiry(self):
        token = create_access_token({"sub": "user1"}, expires_delta=timedelta(minutes=5))
        payload = decode_token(token)
        assert payload["sub"] == "user1"

    def test_issue_tokens_pair(self):
        tokens = issue_tokens("user42")
        assert decode_token(tokens["access_token"], expected_type="access")["sub"] == "user42"
        assert decode_token(tokens["refresh_token"], expected_type="refresh")["sub"] == "user42"
