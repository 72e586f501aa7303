"""
Domain error taxonomy.

Every failure raised by the booking and authentication core is a SalonError
carrying a user-facing message and a stable error code. Routers convert
them to the uniform {"success": false, "message": ...} response; they are
never surfaced to HTTP clients as exceptions.
"""


class SalonError(Exception):
    """Base exception for booking and authentication failures."""

    default_code = "SALON_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(SalonError):
    """Request input has the wrong shape (e.g. malformed date or time)."""

    default_code = "INVALID_INPUT"


class BusinessRuleViolation(SalonError):
    """Well-formed request rejected by a booking rule."""

    default_code = "BUSINESS_RULE_VIOLATION"


class NotFoundError(SalonError):
    """Referenced user or appointment does not exist."""

    default_code = "NOT_FOUND"


class AuthError(SalonError):
    """Authentication failure."""

    default_code = "AUTH_ERROR"


class InvalidCredentials(AuthError):
    default_code = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class InvalidOtp(AuthError):
    default_code = "INVALID_OTP"

    def __init__(self, message: str = "Invalid OTP."):
        super().__init__(message)


class OtpExpired(AuthError):
    default_code = "OTP_EXPIRED"

    def __init__(self, message: str = "OTP expired. Please request a new one."):
        super().__init__(message)


class ResetNotAuthorized(AuthError):
    """Password update attempted without a valid, unexpired OTP verification."""

    default_code = "RESET_NOT_AUTHORIZED"

    def __init__(self, message: str = "A verified OTP is required to reset the password."):
        super().__init__(message)


class ConfigMissingError(SalonError):
    """System configuration is absent or unusable (deployment precondition)."""

    default_code = "CONFIG_MISSING"


class InfrastructureError(SalonError):
    """Data store or delivery channel failure."""

    default_code = "INFRASTRUCTURE_ERROR"
