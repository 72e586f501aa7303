"""
Startup configuration validation module.

This module provides startup-time validation for critical configuration
to catch misconfigurations early (fail-fast) rather than at runtime when
a customer tries to book or log in.

Usage:
    from shared.startup_validator import validate_startup_config, StartupValidationError

    async def main():
        try:
            await validate_startup_config()
        except StartupValidationError as e:
            logger.critical(f"Startup blocked: {e}")
            sys.exit(1)
"""

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import text

from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)

ASYNC_DRIVER_PREFIXES = ("postgresql+asyncpg://", "sqlite+aiosqlite://")
DEV_JWT_SECRET = "dev-only-secret-change-me"
MIN_JWT_SECRET_LENGTH = 32


class StartupValidationError(Exception):
    """Raised when critical startup validation fails."""

    pass


async def validate_startup_config(settings: Settings | None = None) -> dict[str, bool]:
    """
    Validate all critical configuration at startup.

    Performs tiered validation:
    - TIER 1 (CRITICAL): Block startup if any fail
    - TIER 2 (IMPORTANT): Warn but allow startup

    Returns:
        dict of {check_name: passed} for all validations

    Raises:
        StartupValidationError: If any CRITICAL check fails
    """
    settings = settings or get_settings()
    results: dict[str, bool] = {}
    critical_failures: list[str] = []

    # =========================================================================
    # TIER 1: CRITICAL (block startup if any fail)
    # =========================================================================

    # 1. Database URL must use an async driver
    if not settings.DATABASE_URL.startswith(ASYNC_DRIVER_PREFIXES):
        critical_failures.append(
            "DATABASE_URL must use an async driver: postgresql+asyncpg:// or sqlite+aiosqlite://"
        )
        results["database_url_format"] = False
    else:
        results["database_url_format"] = True
        logger.info("  [OK] Database URL uses an async driver")

    # 2. Salon timezone must resolve
    try:
        ZoneInfo(settings.TIMEZONE)
        results["timezone"] = True
        logger.info(f"  [OK] Salon timezone: {settings.TIMEZONE}")
    except (ZoneInfoNotFoundError, ValueError):
        critical_failures.append(f"TIMEZONE '{settings.TIMEZONE}' is not a known IANA timezone")
        results["timezone"] = False

    # 3. JWT secret must be set
    if not settings.JWT_SECRET:
        critical_failures.append("JWT_SECRET is empty - password reset tokens cannot be signed")
        results["jwt_secret"] = False
    else:
        results["jwt_secret"] = True

    # =========================================================================
    # TIER 2: IMPORTANT (warn but allow startup)
    # =========================================================================

    # 4. JWT secret strength
    if settings.JWT_SECRET == DEV_JWT_SECRET or len(settings.JWT_SECRET) < MIN_JWT_SECRET_LENGTH:
        logger.warning(
            f"JWT_SECRET is the development default or shorter than {MIN_JWT_SECRET_LENGTH} characters"
        )
        results["jwt_secret_strength"] = False
    else:
        results["jwt_secret_strength"] = True

    # 5. SMTP credentials for OTP delivery
    if not (settings.SMTP_USERNAME and settings.SMTP_PASSWORD):
        logger.warning(
            "SMTP_USERNAME / SMTP_PASSWORD not configured - OTP emails will not be delivered"
        )
        results["smtp_configured"] = False
    else:
        results["smtp_configured"] = True
        logger.info(f"  [OK] SMTP configured ({settings.SMTP_HOST}:{settings.SMTP_PORT})")

    # =========================================================================
    # Summary and result
    # =========================================================================

    passed = sum(1 for v in results.values() if v)
    total = len(results)
    logger.info(f"Startup validation: {passed}/{total} checks passed")

    if critical_failures:
        logger.critical("=" * 60)
        logger.critical("STARTUP BLOCKED - Critical configuration errors:")
        for i, failure in enumerate(critical_failures, 1):
            logger.critical(f"  {i}. {failure}")
        logger.critical("=" * 60)
        raise StartupValidationError(
            f"Critical startup validation failed ({len(critical_failures)} errors): "
            f"{'; '.join(critical_failures)}"
        )

    return results


async def validate_database_connection() -> bool:
    """
    Validate database connection is working.

    This is a separate check because it's slower and may be called
    after basic config validation.

    Returns:
        True if database connection successful, False otherwise
    """
    from database.connection import get_async_session

    try:
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))

        logger.info("  [OK] Database connection successful")
        return True

    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
