"""
Unit tests for shared/security.py - password hashing and reset tokens.
"""

import time
from datetime import UTC, datetime

import pytest
from jose import jwt

from shared.config import get_settings
from shared.security import (
    JWT_ALGORITHM,
    TokenError,
    create_password_reset_token,
    decode_password_reset_token,
    hash_password,
    issued_at_micros,
    verify_password,
)

OTP_ISSUED_AT = datetime(2026, 11, 2, 1, 0, 0, 250000, tzinfo=UTC)


class TestPasswordHashing:
    def test_hash_is_not_plaintext_and_verifies(self):
        hashed = hash_password("Secret123!")

        assert hashed != "Secret123!"
        assert hashed.startswith("$2")
        assert verify_password("Secret123!", hashed)

    def test_wrong_password_rejected(self):
        assert not verify_password("wrong", hash_password("Secret123!"))

    def test_same_password_hashes_differently(self):
        assert hash_password("Secret123!") != hash_password("Secret123!")

    @pytest.mark.parametrize("stored", [None, "", "plaintext-password", "$2b$04$broken"])
    def test_missing_or_malformed_hash_never_raises(self, stored):
        assert verify_password("Secret123!", stored) is False

    def test_empty_password_rejected(self):
        assert verify_password("", hash_password("Secret123!")) is False


class TestPasswordResetToken:
    def test_round_trip_returns_user_and_otp_issuance(self):
        token = create_password_reset_token(42, OTP_ISSUED_AT)

        claims = decode_password_reset_token(token)

        assert claims.user_id == 42
        assert claims.otp_issued_at == issued_at_micros(OTP_ISSUED_AT)

    def test_naive_and_aware_utc_issuance_match(self):
        assert issued_at_micros(OTP_ISSUED_AT.replace(tzinfo=None)) == issued_at_micros(OTP_ISSUED_AT)
        assert issued_at_micros(OTP_ISSUED_AT) != issued_at_micros(OTP_ISSUED_AT.replace(microsecond=1))

    def test_tokens_are_unique_per_issue(self):
        assert create_password_reset_token(1, OTP_ISSUED_AT) != create_password_reset_token(1, OTP_ISSUED_AT)

    def test_expired_token_rejected(self):
        token = create_password_reset_token(42, OTP_ISSUED_AT, expires_in_minutes=-1)

        with pytest.raises(TokenError):
            decode_password_reset_token(token)

    def test_missing_otp_claim_rejected(self):
        now = int(time.time())
        token = jwt.encode(
            {"sub": "42", "exp": now + 60, "iat": now, "type": "password_reset"},
            get_settings().JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(TokenError):
            decode_password_reset_token(token)

    def test_wrong_type_rejected(self):
        now = int(time.time())
        token = jwt.encode(
            {"sub": "42", "exp": now + 60, "iat": now, "type": "session"},
            get_settings().JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(TokenError) as exc_info:
            decode_password_reset_token(token)

        assert "type" in str(exc_info.value)

    def test_foreign_signature_rejected(self):
        now = int(time.time())
        token = jwt.encode(
            {"sub": "42", "exp": now + 60, "type": "password_reset"},
            "some-other-secret-that-is-long-enough",
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(TokenError):
            decode_password_reset_token(token)

    @pytest.mark.parametrize("token", ["", "abc.def.ghi"])
    def test_garbage_rejected(self, token):
        with pytest.raises(TokenError):
            decode_password_reset_token(token)
