"""
Unit tests for shared/startup_validator.py.
"""

from unittest.mock import patch

import pytest

from shared.config import Settings
from shared.startup_validator import (
    StartupValidationError,
    validate_database_connection,
    validate_startup_config,
)

STRONG_SECRET = "x" * 48


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "postgresql+asyncpg://salon:pw@localhost:5432/salon_db",
        "TIMEZONE": "Asia/Manila",
        "JWT_SECRET": STRONG_SECRET,
        "SMTP_USERNAME": "owner@example.com",
        "SMTP_PASSWORD": "app-password",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestCriticalChecks:
    @pytest.mark.asyncio
    async def test_all_checks_pass(self):
        results = await validate_startup_config(make_settings())

        assert all(results.values())

    @pytest.mark.asyncio
    async def test_sync_driver_blocks_startup(self):
        with pytest.raises(StartupValidationError) as exc_info:
            await validate_startup_config(make_settings(DATABASE_URL="postgresql://salon@localhost/salon_db"))

        assert "DATABASE_URL" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unknown_timezone_blocks_startup(self):
        with pytest.raises(StartupValidationError) as exc_info:
            await validate_startup_config(make_settings(TIMEZONE="Mars/Olympus_Mons"))

        assert "TIMEZONE" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_jwt_secret_blocks_startup(self):
        with pytest.raises(StartupValidationError):
            await validate_startup_config(make_settings(JWT_SECRET=""))


class TestWarnings:
    @pytest.mark.asyncio
    async def test_missing_smtp_only_warns(self):
        results = await validate_startup_config(make_settings(SMTP_USERNAME="", SMTP_PASSWORD=""))

        assert results["smtp_configured"] is False
        assert results["database_url_format"] is True

    @pytest.mark.asyncio
    async def test_short_secret_only_warns(self):
        results = await validate_startup_config(make_settings(JWT_SECRET="short"))

        assert results["jwt_secret"] is True
        assert results["jwt_secret_strength"] is False

    @pytest.mark.asyncio
    async def test_sqlite_driver_accepted(self):
        results = await validate_startup_config(make_settings(DATABASE_URL="sqlite+aiosqlite:///./salon.db"))

        assert results["database_url_format"] is True


class TestDatabaseConnection:
    @pytest.mark.asyncio
    async def test_reachable_database(self):
        assert await validate_database_connection() is True

    @pytest.mark.asyncio
    async def test_unreachable_database(self):
        with patch("database.connection.get_async_session", side_effect=OSError("connection refused")):
            assert await validate_database_connection() is False
