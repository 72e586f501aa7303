"""
Seed data orchestration module.

Provides seed_all() to run every seed in dependency order.
Can be run standalone: python -m database.seeds
"""

import asyncio

from database.connection import get_async_session, init_models
from database.seeds.salon_defaults import SessionFactory, seed_salon_defaults


async def seed_all(session_factory: SessionFactory = get_async_session) -> None:
    """
    Execute all seed scripts.

    Order:
    1. system_config (singleton id 1)
    2. security_settings (Two-Factor Authentication, disabled)
    3. superadmin user
    """
    await seed_salon_defaults(session_factory)


async def _main() -> None:
    await init_models()
    await seed_all()
    print("Database seeding complete!")


if __name__ == "__main__":
    asyncio.run(_main())
