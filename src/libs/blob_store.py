"""
Blob storage for artifact files.

The service only needs put/delete and a retrieval URL; the local filesystem
implementation backs development and tests.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

import structlog
from src.core.config import get_settings

logger = structlog.get_logger()


class BlobStoreError(Exception):
    """Raised when a blob cannot be written or removed."""


class BlobStoreProtocol(Protocol):
    """Protocol for blob stores (allows mocking)."""

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under ``key`` and return the retrieval URL."""
        ...

    async def delete(self, key: str) -> None:
        """Remove the blob stored under ``key``; missing keys are ignored."""
        ...


class LocalBlobStore:
    """Stores blobs below a root directory and serves them from a base URL."""

    def __init__(self, root: str | Path | None = None, base_url: str | None = None) -> None:
        settings = get_settings()
        self.root = Path(root or settings.artifact_storage_dir)
        self.base_url = (base_url or settings.artifact_base_url).rstrip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise BlobStoreError(f"Blob key escapes storage root: {key}")
        return path

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as exc:
            raise BlobStoreError(f"Failed to store blob {key}: {exc}") from exc
        logger.info("blob_stored", key=key, size=len(data), content_type=content_type)
        return self.url_for(key)

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise BlobStoreError(f"Failed to delete blob {key}: {exc}") from exc
        logger.info("blob_deleted", key=key)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
