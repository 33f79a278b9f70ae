from __future__ import annotations

import time
from collections.abc import Sequence
from pathlib import PurePath

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.auth import Role
from src.core.config import get_settings
from src.domain.errors import (
    ArtifactNotFoundError,
    DomainValidationError,
    LearnerNotFoundError,
    PermissionDeniedError,
)
from src.domain.models import Artifact, ArtifactFileType, User
from src.infrastructure.db.converters import to_artifact
from src.infrastructure.db.models import ArtifactModel
from src.infrastructure.repositories.records import RecordRepository
from src.libs.blob_store import BlobStoreProtocol, LocalBlobStore

logger = structlog.get_logger(__name__)

_EXTENSION_TYPES: dict[str, ArtifactFileType] = {
    "pdf": ArtifactFileType.PDF,
    "jpg": ArtifactFileType.JPG,
    "jpeg": ArtifactFileType.JPG,
    "png": ArtifactFileType.PNG,
    "mp4": ArtifactFileType.MP4,
}

CONTENT_TYPES: dict[ArtifactFileType, str] = {
    ArtifactFileType.PDF: "application/pdf",
    ArtifactFileType.JPG: "image/jpeg",
    ArtifactFileType.PNG: "image/png",
    ArtifactFileType.MP4: "video/mp4",
}


class ArtifactValidationError(DomainValidationError):
    """Raised when an uploaded file is rejected."""


def detect_file_type(filename: str) -> ArtifactFileType:
    """Map a filename extension onto a supported artifact type."""
    extension = PurePath(filename).suffix.lstrip(".").lower()
    try:
        return _EXTENSION_TYPES[extension]
    except KeyError:
        allowed = ", ".join(sorted(_EXTENSION_TYPES))
        raise ArtifactValidationError(
            f"Unsupported file type '.{extension}'; expected one of: {allowed}"
        ) from None


def storage_key_for(learner_id: str, filename: str, *, millis: int | None = None) -> str:
    stamp = millis if millis is not None else int(time.time() * 1000)
    safe_name = PurePath(filename).name.replace(" ", "_")
    return f"artifacts/{learner_id}/{stamp}_{safe_name}"


class ArtifactService:
    """Evidence uploads linked to competencies on a learner's portfolio."""

    def __init__(
        self,
        session: AsyncSession,
        blob_store: BlobStoreProtocol | None = None,
        max_size_bytes: int | None = None,
    ) -> None:
        self.session = session
        self.records = RecordRepository(session)
        self.blob_store = blob_store or LocalBlobStore()
        self.max_size_bytes = (
            max_size_bytes if max_size_bytes is not None else get_settings().max_artifact_size_bytes
        )

    async def upload(
        self,
        *,
        uploader: User,
        learner_id: str,
        filename: str,
        data: bytes,
        competency_ids: Sequence[str],
        display_name: str | None = None,
    ) -> Artifact:
        """
        Validate and store an evidence file, then record it.

        The blob is written first; if the database commit fails the blob is
        removed again so no orphan file is left behind.
        """
        file_type = detect_file_type(filename)
        if not data:
            raise ArtifactValidationError("Uploaded file is empty")
        if len(data) > self.max_size_bytes:
            raise self.too_large()

        linked = list(dict.fromkeys(cid for cid in competency_ids if cid))
        if not linked:
            raise ArtifactValidationError("Link the artifact to at least one competency")

        await self._require_managed_learner(uploader, learner_id)

        catalog = {competency.id for competency in await self.records.list_competencies()}
        unknown = sorted(set(linked) - catalog)
        if unknown:
            raise ArtifactValidationError(f"Unknown competency id(s): {', '.join(unknown)}")

        key = storage_key_for(learner_id, filename)
        url = await self.blob_store.put(key, data, CONTENT_TYPES[file_type])

        row = ArtifactModel(
            learner_id=learner_id,
            uploaded_by=uploader.user_id,
            file_url=url,
            file_type=file_type,
            file_size=len(data),
            file_name=(display_name or "").strip() or PurePath(filename).stem,
            storage_key=key,
            competency_ids=linked,
        )
        self.session.add(row)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            await self.blob_store.delete(key)
            logger.exception("artifact_record_failed", learner_id=learner_id, key=key)
            raise

        logger.info(
            "artifact_uploaded",
            artifact_id=row.id,
            learner_id=learner_id,
            file_type=file_type.value,
            file_size=len(data),
            competencies=len(linked),
        )
        return to_artifact(row)

    async def list_for_learner(
        self,
        learner_id: str,
        *,
        competency_id: str | None = None,
        viewer: User | None = None,
    ) -> list[Artifact]:
        """A learner's artifacts; ``viewer`` must be the learner or an educator of their org."""
        if viewer is not None and viewer.user_id != learner_id:
            if Role.EDUCATOR.value not in viewer.roles:
                raise PermissionDeniedError("Learners can only list their own artifacts")
            await self._require_managed_learner(viewer, learner_id)
        artifacts = await self.records.list_artifacts(learner_id=learner_id)
        if competency_id is None:
            return artifacts
        return [artifact for artifact in artifacts if competency_id in artifact.competency_ids]

    async def delete(self, *, actor: User, artifact_id: str) -> None:
        row = await self.session.get(ArtifactModel, artifact_id)
        if row is None:
            raise ArtifactNotFoundError(f"Artifact '{artifact_id}' not found")
        if actor.user_id != row.learner_id:
            raise PermissionDeniedError("Only the owning learner may delete an artifact")

        key = row.storage_key
        await self.session.delete(row)
        await self.session.commit()
        if key:
            await self.blob_store.delete(key)

        logger.info("artifact_deleted", artifact_id=artifact_id, actor_id=actor.user_id)

    def too_large(self) -> ArtifactValidationError:
        return ArtifactValidationError(f"File exceeds the limit of {self.max_size_bytes} bytes")

    async def _require_managed_learner(self, actor: User, learner_id: str) -> None:
        learner = await self.records.get_user(learner_id)
        if learner is None or not learner.has_role(Role.LEARNER.value):
            raise LearnerNotFoundError(f"Learner '{learner_id}' not found")
        self._ensure_may_manage(actor, learner_id, org_id=learner.org_id)

    @staticmethod
    def _ensure_may_manage(actor: User, learner_id: str, *, org_id: str) -> None:
        if actor.user_id == learner_id:
            return
        if Role.EDUCATOR.value in actor.roles and actor.org_id == org_id:
            return
        raise PermissionDeniedError(
            "Artifacts are managed by the learner or an educator of their organization"
        )
