from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator
from src.domain.models import MAX_SCORE, MIN_SCORE, Competency, CompetencyType


class CompetencyItem(BaseModel):
    id: str
    title: str
    description: str
    type: CompetencyType
    org_id: str
    created_by: str
    rubric: dict[int, str]
    created_at: datetime

    @classmethod
    def from_domain(cls, competency: Competency) -> CompetencyItem:
        return cls(
            id=competency.id,
            title=competency.title,
            description=competency.description,
            type=competency.type,
            org_id=competency.org_id,
            created_by=competency.created_by,
            rubric=competency.rubric_labels,
            created_at=competency.created_at,
        )


class CompetenciesResponse(BaseModel):
    competencies: list[CompetencyItem]


class CompetencyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    type: CompetencyType
    rubric: dict[int, str] | None = Field(
        None, description="Optional label for each score 0-4; defaults to the standard scale"
    )

    @field_validator("rubric")
    @classmethod
    def _rubric_covers_scale(cls, value: dict[int, str] | None) -> dict[int, str] | None:
        if value is not None and set(value) != set(range(MIN_SCORE, MAX_SCORE + 1)):
            raise ValueError("rubric must label every score from 0 to 4")
        return value
