from __future__ import annotations

from pydantic import BaseModel


class SuggestedRatingItem(BaseModel):
    competency_id: str
    score: int
    comment: str


class TranscriptAnalysisResponse(BaseModel):
    suggestions: list[SuggestedRatingItem]
