from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field
from src.domain.models import MAX_SCORE, MIN_SCORE, Rating, RaterType, RatingStatus


class RatingItem(BaseModel):
    id: str
    learner_id: str
    competency_id: str
    rater_id: str
    rater_type: RaterType
    status: RatingStatus
    score: int | None = None
    comment: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, rating: Rating) -> RatingItem:
        return cls(
            id=rating.id,
            learner_id=rating.learner_id,
            competency_id=rating.competency_id,
            rater_id=rating.rater_id,
            rater_type=rating.rater_type,
            status=rating.status,
            score=rating.score,
            comment=rating.comment,
            created_at=rating.created_at,
            updated_at=rating.updated_at,
        )


class RatingsResponse(BaseModel):
    ratings: list[RatingItem]


class RatingRecordRequest(BaseModel):
    learner_id: str
    competency_id: str
    score: int = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    comment: str | None = None
    request_self: bool = False
    master_rater_id: str | None = None


class RatingRequestCreate(BaseModel):
    learner_id: str
    competency_id: str
    request_self: bool = False
    master_rater_id: str | None = None


class RatingSubmitRequest(BaseModel):
    score: int = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    comment: str | None = None


class RatingQueueItem(BaseModel):
    """A rating with the competency title and learner name a rater needs."""

    rating: RatingItem
    competency_title: str | None = None
    competency_description: str | None = None
    learner_name: str | None = None


class RatingQueueResponse(BaseModel):
    items: list[RatingQueueItem]


class NextPendingResponse(BaseModel):
    item: RatingQueueItem | None = Field(None, description="Null when the queue is exhausted")
