"""
Create the schema and seed default RBAC roles, resources, actions and grants.

Usage:
    python -m scripts.seed_rbac
"""
import asyncio

from qualitytrack.infrastructure.persistence.database import (Base, get_engine,
                                                              get_sessionmaker)
from qualitytrack.infrastructure.persistence import models  # noqa: F401  registers all tables
from qualitytrack.infrastructure.persistence.seed import seed_rbac
from qualitytrack.shared.telemetry.logging import setup_logging


async def main():
    """Create tables if missing, then seed in one transaction"""
    setup_logging()
    engine = get_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    print("\n🌱 Seeding RBAC data...\n")
    async with get_sessionmaker()() as db:
        async with db.begin():
            await seed_rbac(db)

    await engine.dispose()
    print("✅ RBAC seeding completed successfully!")


if __name__ == "__main__":
    asyncio.run(main())
