#!/usr/bin/env python3
"""
Print every artifact record as JSON.

Run with:
    python scripts/export_artifacts.py > artifacts.json
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from src.infrastructure.db.converters import to_artifact
from src.infrastructure.db.models import ArtifactModel
from src.infrastructure.db.session import script_session


async def export_artifacts() -> list[dict[str, object]]:
    async with script_session() as session:
        rows = (
            await session.execute(select(ArtifactModel).order_by(ArtifactModel.created_at))
        ).scalars()
        return [
            {
                "id": artifact.id,
                "learner_id": artifact.learner_id,
                "uploaded_by": artifact.uploaded_by,
                "file_url": artifact.file_url,
                "file_type": artifact.file_type.value,
                "file_size": artifact.file_size,
                "file_name": artifact.file_name,
                "competency_ids": list(artifact.competency_ids),
                "created_at": artifact.created_at.isoformat(),
            }
            for artifact in map(to_artifact, rows)
        ]


async def main() -> int:
    try:
        artifacts = await export_artifacts()
    except Exception as exc:
        print(f"❌ Export failed: {exc}", file=sys.stderr)
        return 1

    print(f"Found {len(artifacts)} artifacts", file=sys.stderr)
    print(json.dumps(artifacts, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
