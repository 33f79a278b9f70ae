from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field
from src.api.schemas.competencies import CompetencyItem
from src.api.schemas.ratings import RatingItem
from src.domain.models import MAX_SCORE, MIN_SCORE, UserRecord
from src.domain.portfolio import CompetencyAggregate, ProgressSeries, RaterTrack


class LearnerItem(BaseModel):
    id: str
    display_name: str
    email: str
    org_id: str
    roles: list[str]
    hidden_competency_ids: list[str] = []
    competency_display_order: list[str] = []
    created_at: datetime

    @classmethod
    def from_domain(cls, user: UserRecord) -> LearnerItem:
        return cls(
            id=user.id,
            display_name=user.display_name,
            email=user.email,
            org_id=user.org_id,
            roles=list(user.roles),
            hidden_competency_ids=list(user.hidden_competency_ids),
            competency_display_order=list(user.competency_display_order),
            created_at=user.created_at,
        )


class LearnersResponse(BaseModel):
    learners: list[LearnerItem]


class LearnerCreate(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class OnboardingRatingInput(BaseModel):
    competency_id: str | None = Field(
        None, description="Entries without a competency are skipped"
    )
    score: int = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    comment: str | None = None


class LearnerOnboardRequest(LearnerCreate):
    ratings: list[OnboardingRatingInput] = []


class LearnerOnboardResponse(BaseModel):
    learner: LearnerItem
    ratings: list[RatingItem]


class AggregateItem(BaseModel):
    competency: CompetencyItem
    average: float
    rating_count: int

    @classmethod
    def from_domain(cls, aggregate: CompetencyAggregate) -> AggregateItem:
        return cls(
            competency=CompetencyItem.from_domain(aggregate.competency),
            average=aggregate.average,
            rating_count=len(aggregate.ratings),
        )


class ProgressPointItem(BaseModel):
    timestamp: datetime
    running_average: float


class ScorePointItem(BaseModel):
    timestamp: datetime
    score: int


class RaterTrackItem(BaseModel):
    rater_type: str
    points: list[ScorePointItem]

    @classmethod
    def from_domain(cls, track: RaterTrack) -> RaterTrackItem:
        return cls(
            rater_type=track.rater_type.value,
            points=[
                ScorePointItem(timestamp=point.timestamp, score=point.score)
                for point in track.points
            ],
        )


class ProgressSeriesItem(BaseModel):
    competency_id: str
    title: str
    points: list[ProgressPointItem]
    rater_tracks: list[RaterTrackItem] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, series: ProgressSeries) -> ProgressSeriesItem:
        return cls(
            competency_id=series.competency.id,
            title=series.competency.title,
            points=[
                ProgressPointItem(timestamp=point.timestamp, running_average=point.running_average)
                for point in series.points
            ],
            rater_tracks=[RaterTrackItem.from_domain(track) for track in series.rater_tracks],
        )


class LearnerOverviewResponse(BaseModel):
    learner: LearnerItem
    competencies: list[AggregateItem]
    progress: list[ProgressSeriesItem]


class PendingSelfAssessmentItem(BaseModel):
    rating: RatingItem
    competency: CompetencyItem | None = None


class LearnerDashboardResponse(BaseModel):
    learner: LearnerItem
    pending_self_assessments: list[PendingSelfAssessmentItem]
    competencies: list[AggregateItem]


class VisibilityUpdate(BaseModel):
    learner_id: str | None = Field(
        None, description="Must match the authenticated learner when supplied"
    )
    hidden_competency_ids: list[str]


class DisplayOrderUpdate(BaseModel):
    learner_id: str | None = Field(
        None, description="Must match the authenticated learner when supplied"
    )
    competency_display_order: list[str]
