# ============================================================================
# Seed Default Badges
# ============================================================================
"""
Script to create the default badges (Math Master, Speed Demon,
Consistent Learner) if they are missing.

Usage:
    python scripts/seed_badges.py
"""

import asyncio
import sys
import os

# Ensure the app directory is in the python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.database import get_engine, init_models
from app.repositories.sql import unit_of_work
from app.services.gamification.achievements import BadgeEngine


async def seed_badges():
    """Create tables and missing default badges"""
    print("🌱 Seeding default badges...")

    await init_models()

    async with unit_of_work() as uow:
        created = await BadgeEngine(uow).ensure_default_badges()

    await get_engine().dispose()

    print(f"✅ Done: {created} badges created")


if __name__ == "__main__":
    asyncio.run(seed_badges())
