from __future__ import annotations

from pydantic import BaseModel, Field, model_validator
from src.api.schemas.artifacts import ArtifactItem
from src.api.schemas.competencies import CompetencyItem
from src.api.schemas.learners import LearnerItem
from src.domain.models import MAX_SCORE, MIN_SCORE, OrgType, RaterType


class OrganizationItem(BaseModel):
    id: str
    name: str
    org_type: OrgType


class PortfolioEntryItem(BaseModel):
    competency: CompetencyItem
    average: float
    rating_count: int
    rater_types: list[RaterType]
    artifacts: list[ArtifactItem] = []


class PublicProfileResponse(BaseModel):
    learner_id: str
    display_name: str
    organization: OrganizationItem | None = None
    competencies: list[PortfolioEntryItem]


class SearchCriterionInput(BaseModel):
    competency_id: str = Field(..., min_length=1)
    min_average: float = Field(..., ge=MIN_SCORE, le=MAX_SCORE)


class SearchRequest(BaseModel):
    criteria: list[SearchCriterionInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_competencies(self) -> SearchRequest:
        ids = [criterion.competency_id for criterion in self.criteria]
        if len(ids) != len(set(ids)):
            raise ValueError("each competency may appear only once in the criteria")
        return self


class MatchedCompetencyItem(BaseModel):
    competency_id: str
    title: str
    average: float


class SearchResultItem(BaseModel):
    learner: LearnerItem
    matched_competencies: list[MatchedCompetencyItem]


class SearchResponse(BaseModel):
    results: list[SearchResultItem]
