"""
Unit tests for otp_service.py - OTP Authenticator.

Tests coverage:
- login() with two-factor disabled and enabled
- Uniform credential failure for unknown email and wrong password
- Issue-or-replace: one live OTP per user, older codes become invalid
- verify_otp() failure ordering and the 5-minute expiry boundary
- Delivery is scheduled, and its failures never fail issuance
- Verification attempts are capped per issued code
- forgot_password() / update_password() with a single-use reset token
- register() and change_password()
"""

import asyncio

import pytest

from database.models import TWO_FACTOR_SETTING_NAME
from salon.errors import (
    AuthError,
    BusinessRuleViolation,
    InvalidCredentials,
    InvalidOtp,
    NotFoundError,
    OtpExpired,
    ResetNotAuthorized,
    ValidationError,
)
from salon.services.otp_service import OTP_MAX, OTP_MIN, OtpAuthenticator, generate_otp_code
from shared.security import create_password_reset_token, decode_password_reset_token, verify_password


@pytest.fixture
def make_authenticator(user_repository, otp_repository, notifier, otp_clock, otp_codes, make_security_settings):
    def factory(two_factor: bool = True, delivery=None, schedule=None):
        return OtpAuthenticator(
            users=user_repository,
            otps=otp_repository,
            security=make_security_settings({TWO_FACTOR_SETTING_NAME: two_factor}),
            notifier=delivery or notifier,
            clock=otp_clock,
            code_generator=otp_codes,
            ttl_minutes=5,
            max_attempts=5,
            schedule=schedule,
        )

    return factory


@pytest.fixture
def authenticator(make_authenticator):
    return make_authenticator()


@pytest.fixture
def ana(user_repository):
    return user_repository.add("Ana", "ana@example.com", "Secret123!")


# ============================================================================
# Test Login
# ============================================================================


class TestLogin:
    @pytest.mark.asyncio
    async def test_two_factor_disabled_returns_user(self, make_authenticator, ana, notifier, otp_repository):
        result = await make_authenticator(two_factor=False).login("ana@example.com", "Secret123!")

        assert result.require_otp is False
        assert result.message == "Login successful (2FA disabled)."
        assert result.user["id"] == ana.id
        assert result.user["email"] == "ana@example.com"
        assert "password_hash" not in result.user
        assert notifier.sent == []
        assert otp_repository.rows == {}

    @pytest.mark.asyncio
    async def test_two_factor_enabled_issues_and_sends_otp(self, authenticator, ana, notifier, otp_repository):
        result = await authenticator.login("ana@example.com", "Secret123!")
        await authenticator.wait_for_deliveries()

        assert result.require_otp is True
        assert result.message == "OTP sent to your email."
        assert result.user is None
        assert notifier.sent == [("ana@example.com", "4821")]
        assert otp_repository.rows[ana.id].code == "4821"

    @pytest.mark.asyncio
    async def test_missing_setting_row_means_disabled(
        self, user_repository, otp_repository, notifier, otp_clock, make_security_settings, ana
    ):
        authenticator = OtpAuthenticator(
            users=user_repository,
            otps=otp_repository,
            security=make_security_settings(),
            notifier=notifier,
            clock=otp_clock,
        )

        result = await authenticator.login("ana@example.com", "Secret123!")

        assert result.require_otp is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password",
        [
            ("nobody@example.com", "Secret123!"),
            ("ana@example.com", "wrong-password"),
            ("", "Secret123!"),
        ],
    )
    async def test_credential_failures_are_uniform(self, authenticator, ana, notifier, email, password):
        with pytest.raises(InvalidCredentials) as exc_info:
            await authenticator.login(email, password)

        assert exc_info.value.message == "Invalid credentials"
        assert notifier.sent == []


# ============================================================================
# Test OTP Issuance
# ============================================================================


class TestIssueOrReplace:
    @pytest.mark.asyncio
    async def test_reissue_invalidates_previous_code(self, authenticator, ana, otp_repository):
        await authenticator.login("ana@example.com", "Secret123!")
        await authenticator.resend_otp("ana@example.com")

        assert len(otp_repository.rows) == 1
        assert otp_repository.rows[ana.id].code == "7310"

        with pytest.raises(InvalidOtp):
            await authenticator.verify_otp("ana@example.com", "4821")

        verified = await authenticator.verify_otp("ana@example.com", "7310")
        assert verified.user["id"] == ana.id

    @pytest.mark.asyncio
    async def test_reissue_restarts_expiry_window(self, authenticator, ana, otp_clock):
        await authenticator.login("ana@example.com", "Secret123!")
        otp_clock.advance(minutes=4)
        await authenticator.resend_otp("ana@example.com")
        otp_clock.advance(minutes=4)

        verified = await authenticator.verify_otp("ana@example.com", "7310")

        assert verified.user["email"] == "ana@example.com"

    @pytest.mark.asyncio
    async def test_delivery_failure_keeps_otp(
        self, make_authenticator, make_notifier_failing, ana, otp_repository
    ):
        authenticator = make_authenticator(delivery=make_notifier_failing)

        result = await authenticator.login("ana@example.com", "Secret123!")
        await authenticator.wait_for_deliveries()

        assert result.require_otp is True
        assert otp_repository.rows[ana.id].code == "4821"
        verified = await authenticator.verify_otp("ana@example.com", "4821")
        assert verified.user["id"] == ana.id

    @pytest.mark.asyncio
    async def test_delivery_runs_after_issuance_returns(self, make_authenticator, ana, notifier, otp_repository):
        scheduled = []
        authenticator = make_authenticator(schedule=lambda func, *args: scheduled.append((func, args)))

        result = await authenticator.login("ana@example.com", "Secret123!")

        assert result.require_otp is True
        assert otp_repository.rows[ana.id].code == "4821"
        assert notifier.sent == []

        func, args = scheduled[0]
        await func(*args)
        assert notifier.sent == [("ana@example.com", "4821")]

    @pytest.mark.asyncio
    async def test_resend_for_unknown_email(self, authenticator):
        with pytest.raises(NotFoundError) as exc_info:
            await authenticator.resend_otp("ghost@example.com")

        assert exc_info.value.message == "User not found."

    def test_generated_codes_are_four_digits(self):
        for _ in range(200):
            code = generate_otp_code()
            assert len(code) == 4
            assert OTP_MIN <= int(code) <= OTP_MAX


# ============================================================================
# Test Verification
# ============================================================================


class TestVerifyOtp:
    @pytest.mark.asyncio
    async def test_exactly_ttl_is_still_valid(self, authenticator, ana, otp_clock):
        await authenticator.login("ana@example.com", "Secret123!")
        otp_clock.advance(minutes=5)

        verified = await authenticator.verify_otp("ana@example.com", "4821")

        assert verified.user["id"] == ana.id
        assert decode_password_reset_token(verified.reset_token).user_id == ana.id

    @pytest.mark.asyncio
    async def test_one_second_past_ttl_is_expired(self, authenticator, ana, otp_clock, otp_repository):
        await authenticator.login("ana@example.com", "Secret123!")
        otp_clock.advance(minutes=5, seconds=1)

        with pytest.raises(OtpExpired) as exc_info:
            await authenticator.verify_otp("ana@example.com", "4821")

        assert exc_info.value.message == "OTP expired. Please request a new one."
        assert ana.id in otp_repository.rows

    @pytest.mark.asyncio
    async def test_expiry_is_stable_across_retries(self, authenticator, ana, otp_clock):
        await authenticator.login("ana@example.com", "Secret123!")
        otp_clock.advance(minutes=6)

        for _ in range(2):
            with pytest.raises(OtpExpired):
                await authenticator.verify_otp("ana@example.com", "4821")

    @pytest.mark.asyncio
    async def test_integer_code_accepted(self, authenticator, ana):
        await authenticator.login("ana@example.com", "Secret123!")

        verified = await authenticator.verify_otp("ana@example.com", 4821)

        assert verified.user["id"] == ana.id

    @pytest.mark.asyncio
    async def test_unknown_user_reported_first(self, authenticator, ana):
        await authenticator.login("ana@example.com", "Secret123!")

        with pytest.raises(NotFoundError):
            await authenticator.verify_otp("ghost@example.com", "0000")

    @pytest.mark.asyncio
    async def test_wrong_code_reported_before_expiry(self, authenticator, ana, otp_clock):
        await authenticator.login("ana@example.com", "Secret123!")
        otp_clock.advance(minutes=30)

        with pytest.raises(InvalidOtp) as exc_info:
            await authenticator.verify_otp("ana@example.com", "0000")

        assert exc_info.value.message == "Invalid OTP."

    @pytest.mark.asyncio
    async def test_no_otp_issued_is_invalid(self, authenticator, ana):
        with pytest.raises(InvalidOtp):
            await authenticator.verify_otp("ana@example.com", "4821")

    @pytest.mark.asyncio
    async def test_code_unusable_after_max_attempts(self, authenticator, ana, otp_repository):
        await authenticator.forgot_password("ana@example.com")

        for guess in ["1000", "1001", "1002", "1003", "1004"]:
            with pytest.raises(InvalidOtp):
                await authenticator.verify_otp("ana@example.com", guess)

        with pytest.raises(InvalidOtp):
            await authenticator.verify_otp("ana@example.com", "4821")
        assert otp_repository.rows[ana.id].attempts == 5

    @pytest.mark.asyncio
    async def test_new_code_restores_attempts(self, authenticator, ana):
        await authenticator.login("ana@example.com", "Secret123!")
        for _ in range(5):
            with pytest.raises(InvalidOtp):
                await authenticator.verify_otp("ana@example.com", "0000")

        await authenticator.resend_otp("ana@example.com")
        verified = await authenticator.verify_otp("ana@example.com", "7310")

        assert verified.user["id"] == ana.id

    @pytest.mark.asyncio
    async def test_concurrent_guesses_cannot_exceed_cap(self, authenticator, ana, otp_repository):
        await authenticator.login("ana@example.com", "Secret123!")
        guesses = [str(code) for code in range(1000, 1020)] + ["4821"]

        results = await asyncio.gather(
            *(authenticator.verify_otp("ana@example.com", guess) for guess in guesses),
            return_exceptions=True,
        )

        assert all(isinstance(r, InvalidOtp) for r in results)
        assert otp_repository.rows[ana.id].attempts == 5


# ============================================================================
# Test Password Reset
# ============================================================================


class TestPasswordReset:
    @pytest.mark.asyncio
    async def test_forgot_password_sends_otp(self, authenticator, ana, notifier):
        await authenticator.forgot_password("ana@example.com")
        await authenticator.wait_for_deliveries()

        assert notifier.sent == [("ana@example.com", "4821")]

    @pytest.mark.asyncio
    async def test_forgot_password_unknown_email(self, authenticator, notifier):
        with pytest.raises(NotFoundError) as exc_info:
            await authenticator.forgot_password("ghost@example.com")

        assert exc_info.value.message == "Email not found."
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_full_reset_flow(self, authenticator, ana, user_repository, otp_repository):
        await authenticator.forgot_password("ana@example.com")
        verified = await authenticator.verify_otp("ana@example.com", "4821")

        await authenticator.update_password("ana@example.com", "NewSecret456!", verified.reset_token)

        stored = user_repository.users[ana.id]
        assert stored.password_hash != "NewSecret456!"
        assert verify_password("NewSecret456!", stored.password_hash)
        assert not verify_password("Secret123!", stored.password_hash)
        assert otp_repository.rows == {}

    @pytest.mark.asyncio
    async def test_reset_token_is_single_use(self, authenticator, ana, user_repository):
        await authenticator.forgot_password("ana@example.com")
        token = (await authenticator.verify_otp("ana@example.com", "4821")).reset_token
        await authenticator.update_password("ana@example.com", "NewSecret456!", token)

        with pytest.raises(ResetNotAuthorized):
            await authenticator.update_password("ana@example.com", "Second789!", token)

        assert verify_password("NewSecret456!", user_repository.users[ana.id].password_hash)

    @pytest.mark.asyncio
    async def test_reset_token_dies_with_replaced_otp(self, authenticator, ana, user_repository, otp_clock):
        await authenticator.forgot_password("ana@example.com")
        token = (await authenticator.verify_otp("ana@example.com", "4821")).reset_token
        otp_clock.advance(seconds=30)
        await authenticator.resend_otp("ana@example.com")

        with pytest.raises(ResetNotAuthorized):
            await authenticator.update_password("ana@example.com", "NewSecret456!", token)

        assert verify_password("Secret123!", user_repository.users[ana.id].password_hash)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [("", "NewSecret456!"), ("ana@example.com", ""), (None, None)])
    async def test_missing_fields(self, authenticator, ana, email, password):
        with pytest.raises(ValidationError) as exc_info:
            await authenticator.update_password(email, password, "token")

        assert exc_info.value.message == "Email and new password required."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    async def test_missing_or_malformed_token_rejected(self, authenticator, ana, user_repository, token):
        before = user_repository.users[ana.id].password_hash

        with pytest.raises(ResetNotAuthorized):
            await authenticator.update_password("ana@example.com", "NewSecret456!", token)

        assert user_repository.users[ana.id].password_hash == before

    @pytest.mark.asyncio
    async def test_token_for_another_user_rejected(self, authenticator, ana, user_repository, otp_clock):
        bob = user_repository.add("Bob", "bob@example.com", "BobSecret1!")

        with pytest.raises(ResetNotAuthorized):
            await authenticator.update_password(
                "ana@example.com", "Hijacked1!", create_password_reset_token(bob.id, otp_clock())
            )

        assert verify_password("Secret123!", user_repository.users[ana.id].password_hash)

    @pytest.mark.asyncio
    async def test_unknown_email_on_update(self, authenticator):
        with pytest.raises(NotFoundError):
            await authenticator.update_password("ghost@example.com", "NewSecret456!", "token")


# ============================================================================
# Test Account Management
# ============================================================================


class TestAccountManagement:
    @pytest.mark.asyncio
    async def test_register_hashes_password_and_forces_user_role(self, authenticator, user_repository):
        user = await authenticator.register("Carla", "carla@example.com", "09170000000", "Carla123!")

        assert user.role == "user"
        assert user.password_hash != "Carla123!"
        assert verify_password("Carla123!", user_repository.users[user.id].password_hash)

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, authenticator, ana):
        with pytest.raises(BusinessRuleViolation):
            await authenticator.register("Ana 2", "ana@example.com", "09170000000", "Other123!")

    @pytest.mark.asyncio
    async def test_register_requires_all_fields(self, authenticator):
        with pytest.raises(ValidationError) as exc_info:
            await authenticator.register("Carla", "carla@example.com", "", "Carla123!")

        assert exc_info.value.message == "Registration failed. All fields are required."

    @pytest.mark.asyncio
    async def test_change_password(self, authenticator, ana, user_repository):
        assert await authenticator.change_password(ana.id, "Secret123!", "Changed789!") is True

        assert verify_password("Changed789!", user_repository.users[ana.id].password_hash)

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, authenticator, ana):
        with pytest.raises(AuthError) as exc_info:
            await authenticator.change_password(ana.id, "nope", "Changed789!")

        assert exc_info.value.message == "Current password is incorrect"
