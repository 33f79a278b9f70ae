#!/usr/bin/env python3
"""
Wipe the database and load the demo organization, accounts, competencies
and rating history.

Run with:
    python scripts/seed_database.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import get_settings
from src.core.logging import setup_logging
from src.domain.reference_data import COMPETENCY_DEFINITIONS, RATING_HISTORY, USER_DEFINITIONS
from src.infrastructure.db.seed import seed_demo_data, wipe_all
from src.infrastructure.db.session import script_session


async def main() -> int:
    setup_logging()
    settings = get_settings()

    try:
        async with script_session() as session:
            print("🧹 Wiping existing data...")
            for table, count in (await wipe_all(session)).items():
                print(f"   ✓ Deleted {count} rows from {table}")

            print(f"🌱 Seeding organization {settings.default_org_id}...")
            await seed_demo_data(session, org_id=settings.default_org_id)
    except Exception as exc:
        print(f"❌ Seeding failed: {exc}")
        return 1

    print(f"   ✓ {len(USER_DEFINITIONS)} users")
    print(f"   ✓ {len(COMPETENCY_DEFINITIONS)} competencies")
    print(f"   ✓ {len(RATING_HISTORY)} ratings")
    print("✅ Seed complete")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
