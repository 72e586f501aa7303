"""
Password hashing and signed token helpers.

Passwords are stored as bcrypt hashes (passlib). Password-reset tokens are
short-lived HS256 JWTs (python-jose) issued only after a successful OTP
verification and required by the password-update endpoint. Each token names
the OTP issuance it was verified against, so it stops working once that OTP
is deleted or replaced.
"""

import logging
import time
from datetime import UTC, datetime, timedelta
from typing import Any, NamedTuple
from uuid import uuid4

from jose import JWTError, jwt
from passlib.hash import bcrypt

from shared.config import get_settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
PASSWORD_RESET_TOKEN_TYPE = "password_reset"
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class TokenError(Exception):
    """Raised when a signed token is missing, malformed, expired or of the wrong type."""

    pass


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt using the configured cost factor."""
    settings = get_settings()
    return bcrypt.using(rounds=settings.BCRYPT_ROUNDS).hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify a plaintext password against a stored bcrypt hash.

    Returns False (never raises) for empty or malformed hashes.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.verify(password, password_hash)
    except (ValueError, TypeError) as e:
        logger.error(f"Error verifying password hash: {e}")
        return False


class PasswordResetClaims(NamedTuple):
    user_id: int
    otp_issued_at: int


def issued_at_micros(value: datetime) -> int:
    """Exact integer form of an OTP issuance time, used as a token claim."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return (value - EPOCH) // timedelta(microseconds=1)


def create_password_reset_token(
    user_id: int, otp_issued_at: datetime, expires_in_minutes: int | None = None
) -> str:
    """
    Create a signed password-reset token bound to a user and to the OTP it was
    verified with.

    Returns:
        Encoded JWT with claims sub, otp_iat, exp, iat, jti and type="password_reset"
    """
    settings = get_settings()
    minutes = expires_in_minutes if expires_in_minutes is not None else settings.PASSWORD_RESET_TOKEN_MINUTES
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "otp_iat": issued_at_micros(otp_issued_at),
        "exp": now + minutes * 60,
        "iat": now,
        "jti": str(uuid4()),
        "type": PASSWORD_RESET_TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_password_reset_token(token: str) -> PasswordResetClaims:
    """
    Verify a password-reset token and return the user id and OTP issuance it
    was created for.

    Raises:
        TokenError: If the token is invalid, expired or not a reset token
    """
    if not token:
        raise TokenError("Missing token")

    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(token, settings.JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise TokenError(f"Invalid token: {e}") from e

    if payload.get("type") != PASSWORD_RESET_TOKEN_TYPE:
        raise TokenError("Invalid token type")

    try:
        return PasswordResetClaims(
            user_id=int(payload["sub"]),
            otp_issued_at=int(payload["otp_iat"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise TokenError("Invalid token claims") from e
