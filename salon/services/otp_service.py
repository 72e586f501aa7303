"""
OTP Authenticator - two-step login and password reset.

State flow:
    AwaitingCredentials -> CredentialsValid (2FA off) -> SessionGranted
    AwaitingCredentials -> CredentialsValid (2FA on) -> OtpIssued -> OtpVerified -> SessionGranted
    OtpIssued -> Expired / Invalid (retry by issuing a new code)

Design Principles:
- One live OTP per user: every issuance (login, resend, forgot-password) goes
  through issue_or_replace_otp(), an atomic upsert that overwrites the old code
- Expiry is lazy: computed from created_at at verification time, never swept
- Delivery is fire-and-forget: a failed email is logged, the OTP still stands
- Credential failures are uniform ("Invalid credentials") for unknown email
  and wrong password alike
- Each issued code allows OTP_MAX_ATTEMPTS verifications, then needs a resend
- Password update requires the signed reset token returned by verify_otp(),
  which is bound to that OTP and spent when the password changes
"""

import asyncio
import logging
import secrets
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable, Optional, Protocol

from pydantic import BaseModel

from database.models import TWO_FACTOR_SETTING_NAME
from salon.errors import (
    AuthError,
    InvalidCredentials,
    InvalidOtp,
    NotFoundError,
    OtpExpired,
    ResetNotAuthorized,
    ValidationError,
)
from salon.repositories.base import OtpRepository, SecuritySettingsRepository, UserRecord, UserRepository
from shared.config import get_settings
from shared.security import (
    TokenError,
    create_password_reset_token,
    decode_password_reset_token,
    hash_password,
    issued_at_micros,
    verify_password,
)

logger = logging.getLogger(__name__)

OTP_MIN = 1000
OTP_MAX = 9999


class OtpNotifier(Protocol):
    async def send_otp(self, to: str, code: str) -> bool: ...


# Runs func(*args) after the caller returns, e.g. BackgroundTasks.add_task
DeliveryScheduler = Callable[..., None]


class LoginResult(BaseModel):
    require_otp: bool
    message: str
    user: Optional[dict] = None


class OtpVerification(BaseModel):
    user: dict
    reset_token: str


def generate_otp_code() -> str:
    """Uniformly random 4-digit code in [1000, 9999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def utc_now() -> datetime:
    return datetime.now(UTC)


class OtpAuthenticator:
    """
    Credential check, 2FA gate, OTP issuance/verification and password reset.

    Usage:
        authenticator = OtpAuthenticator(
            users=SqlUserRepository(),
            otps=SqlOtpRepository(),
            security=SqlSecuritySettingsRepository(),
            notifier=EmailClient(),
        )
        result = await authenticator.login("ana@example.com", "secret")
    """

    def __init__(
        self,
        users: UserRepository,
        otps: OtpRepository,
        security: SecuritySettingsRepository,
        notifier: OtpNotifier,
        clock: Callable[[], datetime] = utc_now,
        code_generator: Callable[[], str] = generate_otp_code,
        ttl_minutes: Optional[int] = None,
        max_attempts: Optional[int] = None,
        schedule: Optional[DeliveryScheduler] = None,
    ):
        settings = get_settings()
        self._users = users
        self._otps = otps
        self._security = security
        self._notifier = notifier
        self._clock = clock
        self._code_generator = code_generator
        self._ttl_minutes = ttl_minutes if ttl_minutes is not None else settings.OTP_TTL_MINUTES
        self._max_attempts = max_attempts if max_attempts is not None else settings.OTP_MAX_ATTEMPTS
        self._schedule = schedule or self._create_task
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def is_two_factor_enabled(self) -> bool:
        return await self._security.is_enabled(TWO_FACTOR_SETTING_NAME)

    async def authenticate(self, email: str, password: str) -> UserRecord:
        """
        Check email + password.

        Raises:
            InvalidCredentials: Unknown email or wrong password (same message)
        """
        user = await self._users.get_by_email(email) if email else None
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Login failed: invalid credentials", extra={"email": email})
            raise InvalidCredentials()
        return user

    async def login(self, email: str, password: str) -> LoginResult:
        user = await self.authenticate(email, password)

        if not await self.is_two_factor_enabled():
            logger.info("Login successful (2FA disabled)", extra={"user_id": user.id})
            return LoginResult(
                require_otp=False,
                message="Login successful (2FA disabled).",
                user=user.public(),
            )

        await self.issue_or_replace_otp(user)
        return LoginResult(require_otp=True, message="OTP sent to your email.")

    # ------------------------------------------------------------------
    # OTP lifecycle
    # ------------------------------------------------------------------

    async def issue_or_replace_otp(self, user: UserRecord) -> str:
        """
        Issue a fresh OTP for a user, replacing any previous one, and send it.

        The OTP is persisted before delivery is scheduled. The email is sent
        after the caller returns; delivery failures are only logged.
        """
        code = self._code_generator()
        await self._otps.upsert_otp(user.id, code, self._clock())
        logger.info("OTP issued", extra={"user_id": user.id})

        self._schedule(self._deliver, user.email, code)
        return code

    def _create_task(self, func: Callable[..., Awaitable[None]], *args: Any) -> None:
        task = asyncio.create_task(func(*args))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_for_deliveries(self) -> None:
        """Wait for OTP emails scheduled with the default task scheduler."""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def _deliver(self, email: str, code: str) -> None:
        try:
            await self._notifier.send_otp(email, code)
        except Exception as e:
            logger.error(
                f"Error sending OTP email: {e}",
                extra={"email": email, "error_code": "DELIVERY_FAILED"},
                exc_info=True,
            )

    async def _require_user(self, email: str, message: str = "User not found.") -> UserRecord:
        user = await self._users.get_by_email(email) if email else None
        if user is None:
            raise NotFoundError(message, code="USER_NOT_FOUND")
        return user

    async def verify_otp(self, email: str, code: str | int) -> OtpVerification:
        """
        Verify a submitted code against the user's live OTP.

        Every call spends one of the OTP's max_attempts; once they are used up
        the code is unusable (InvalidOtp) until a new one is issued.

        Order of failures: UserNotFound, then InvalidOtp when the code does not
        match or no attempts remain, then OtpExpired when more than the TTL has
        elapsed. The OTP row is left in place either way.

        Returns:
            OtpVerification with the public user payload and a password-reset
            token bound to this OTP issuance
        """
        user = await self._require_user(email)
        submitted = str(code).strip() if code is not None else ""
        if not submitted:
            raise InvalidOtp()

        entry = await self._otps.claim_attempt(user.id, self._max_attempts)
        if entry is None:
            logger.warning(
                "OTP verification failed: no live code or attempts exhausted",
                extra={"user_id": user.id, "error_code": "INVALID_OTP"},
            )
            raise InvalidOtp()

        if not secrets.compare_digest(entry.code, submitted):
            logger.warning(
                f"OTP verification failed: wrong code (attempt {entry.attempts}/{self._max_attempts})",
                extra={"user_id": user.id, "error_code": "INVALID_OTP"},
            )
            raise InvalidOtp()

        elapsed_minutes = (self._clock() - entry.created_at).total_seconds() / 60
        if elapsed_minutes > self._ttl_minutes:
            logger.warning(
                f"OTP verification failed: expired {elapsed_minutes:.1f} minutes after issue",
                extra={"user_id": user.id},
            )
            raise OtpExpired()

        logger.info("OTP verified", extra={"user_id": user.id})
        return OtpVerification(
            user=user.public(),
            reset_token=create_password_reset_token(user.id, entry.created_at),
        )

    async def resend_otp(self, email: str) -> None:
        user = await self._require_user(email)
        await self.issue_or_replace_otp(user)

    # ------------------------------------------------------------------
    # Password management
    # ------------------------------------------------------------------

    async def forgot_password(self, email: str) -> None:
        user = await self._require_user(email, message="Email not found.")
        await self.issue_or_replace_otp(user)

    async def update_password(self, email: str, new_password: str, reset_token: Optional[str]) -> None:
        """
        Replace a user's password after OTP verification.

        Raises:
            ValidationError: Email or new password missing
            NotFoundError: Unknown email
            ResetNotAuthorized: Reset token missing, invalid, expired, for another
                user, or its OTP was already consumed or replaced
        """
        if not email or not new_password:
            raise ValidationError("Email and new password required.")

        user = await self._require_user(email)

        try:
            claims = decode_password_reset_token(reset_token or "")
        except TokenError as e:
            logger.warning(f"Password reset rejected: {e}", extra={"user_id": user.id})
            raise ResetNotAuthorized() from e

        if claims.user_id != user.id:
            logger.warning("Password reset rejected: token issued for another user", extra={"user_id": user.id})
            raise ResetNotAuthorized()

        entry = await self._otps.get_otp(user.id)
        if entry is None or issued_at_micros(entry.created_at) != claims.otp_issued_at:
            logger.warning(
                "Password reset rejected: token already used or OTP replaced",
                extra={"user_id": user.id},
            )
            raise ResetNotAuthorized()

        # Only the request that deletes the OTP may spend the token
        if await self._otps.delete_for_user(user.id) == 0:
            raise ResetNotAuthorized()
        await self._users.update_password(user.id, hash_password(new_password))
        logger.info("Password reset completed", extra={"user_id": user.id})

    async def change_password(self, user_id: int, current_password: str, new_password: str) -> bool:
        user = await self._users.get_by_id(user_id)
        if user is None or not verify_password(current_password, user.password_hash):
            raise AuthError("Current password is incorrect", code="INVALID_CREDENTIALS")
        if not new_password:
            raise ValidationError("New password required.")
        return await self._users.update_password(user.id, hash_password(new_password))

    async def register(self, name: str, email: str, phone: str, password: str) -> UserRecord:
        """Create a customer account (role is always "user")."""
        if not all([name, email, phone, password]):
            raise ValidationError("Registration failed. All fields are required.")
        user = await self._users.create(name, email, phone, hash_password(password), role="user")
        logger.info("User registered", extra={"user_id": user.id})
        return user
