#!/usr/bin/env python3
"""
Delete every learner account except the ones listed in KEEP_LEARNER_IDS.

Run with:
    python scripts/cleanup_learners.py
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import get_settings
from src.core.logging import setup_logging
from src.domain.services.learners import LearnerService
from src.infrastructure.db.session import script_session


async def main() -> int:
    setup_logging()
    settings = get_settings()
    keep = settings.keep_learner_ids
    print(f"🧹 Removing learners other than: {', '.join(keep)}")

    try:
        async with script_session() as session:
            deleted = await LearnerService(session).remove_extra_learners(keep)
    except Exception as exc:
        print(f"❌ Cleanup failed: {exc}")
        return 1

    if not deleted:
        print("✓ No extra learners found")
    for learner_id in deleted:
        print(f"✓ Deleted: {learner_id}")
    print("✅ Cleanup complete")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
