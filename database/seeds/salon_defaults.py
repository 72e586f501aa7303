"""
Seed script for the rows the booking and login flows depend on.

Populates:
- system_config (id 1): salon hours, daily booking cap, maintenance schedule
- security_settings: "Two-Factor Authentication" (disabled)
- users: one superadmin with a bcrypt-hashed password

Every seed checks for an existing row first, so running it again is a no-op.
"""

import logging
from typing import AsyncContextManager, Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import (
    SYSTEM_CONFIG_ID,
    TWO_FACTOR_SETTING_NAME,
    SecuritySetting,
    SystemConfig,
    User,
    UserRole,
)
from shared.config import get_settings
from shared.security import hash_password

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]

# Security feature flags and their initial state
SECURITY_SETTINGS_DATA: list[dict] = [
    {"name": TWO_FACTOR_SETTING_NAME, "enabled": False},
]


async def seed_system_config(session: AsyncSession) -> bool:
    """Insert the singleton system_config row. Returns True if inserted."""
    if await session.get(SystemConfig, SYSTEM_CONFIG_ID) is not None:
        return False

    settings = get_settings()
    session.add(
        SystemConfig(
            id=SYSTEM_CONFIG_ID,
            salon_hours=settings.DEFAULT_SALON_HOURS,
            max_daily_bookings=settings.DEFAULT_MAX_DAILY_BOOKINGS,
            maintenance_schedule=settings.DEFAULT_MAINTENANCE_SCHEDULE,
        )
    )
    logger.info(f"Seeded system_config: {settings.DEFAULT_SALON_HOURS}, cap {settings.DEFAULT_MAX_DAILY_BOOKINGS}")
    return True


async def seed_security_settings(session: AsyncSession) -> int:
    """Insert missing security settings. Returns the number inserted."""
    inserted = 0
    for setting_data in SECURITY_SETTINGS_DATA:
        result = await session.execute(
            select(SecuritySetting).where(SecuritySetting.name == setting_data["name"])
        )
        if result.scalar_one_or_none() is not None:
            continue
        session.add(SecuritySetting(**setting_data))
        inserted += 1
        logger.info(f"Seeded security setting '{setting_data['name']}'")
    return inserted


async def seed_superadmin(session: AsyncSession) -> bool:
    """Insert the superadmin account if no user owns its email. Returns True if inserted."""
    settings = get_settings()
    result = await session.execute(select(User).where(User.email == settings.SUPERADMIN_EMAIL))
    if result.scalar_one_or_none() is not None:
        return False

    session.add(
        User(
            name=settings.SUPERADMIN_NAME,
            email=settings.SUPERADMIN_EMAIL,
            phone=settings.SUPERADMIN_PHONE,
            password_hash=hash_password(settings.SUPERADMIN_PASSWORD),
            role=UserRole.SUPERADMIN,
        )
    )
    logger.info("Seeded superadmin account", extra={"email": settings.SUPERADMIN_EMAIL})
    return True


async def seed_salon_defaults(session_factory: SessionFactory) -> None:
    async with session_factory() as session:
        async with session.begin():
            await seed_system_config(session)
            await seed_security_settings(session)
            await seed_superadmin(session)
