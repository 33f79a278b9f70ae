from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel
from src.domain.models import Artifact, ArtifactFileType


class ArtifactItem(BaseModel):
    id: str
    learner_id: str
    uploaded_by: str
    file_url: str
    file_type: ArtifactFileType
    file_size: int
    file_name: str
    competency_ids: list[str]
    created_at: datetime

    @classmethod
    def from_domain(cls, artifact: Artifact) -> ArtifactItem:
        return cls(
            id=artifact.id,
            learner_id=artifact.learner_id,
            uploaded_by=artifact.uploaded_by,
            file_url=artifact.file_url,
            file_type=artifact.file_type,
            file_size=artifact.file_size,
            file_name=artifact.file_name,
            competency_ids=list(artifact.competency_ids),
            created_at=artifact.created_at,
        )


class ArtifactsResponse(BaseModel):
    artifacts: list[ArtifactItem]
