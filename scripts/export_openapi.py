from __future__ import annotations

import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi import FastAPI

from src.api.main import app as api_app


def export_openapi(app: FastAPI, destination: Path) -> None:
    """Write the OpenAPI schema of the portfolio API to ``destination``."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(json.dumps(app.openapi(), indent=2))
    print(f"✓ Wrote {destination}")


def main() -> None:
    export_openapi(api_app, Path(sys.argv[1] if len(sys.argv) > 1 else "docs/api/openapi.json"))


if __name__ == "__main__":
    main()
