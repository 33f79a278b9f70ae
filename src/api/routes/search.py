from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_db_session, require_roles
from src.api.schemas.learners import LearnerItem
from src.api.schemas.profiles import (
    MatchedCompetencyItem,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
)
from src.domain import User
from src.domain.errors import DomainValidationError
from src.domain.portfolio import SearchCriterion
from src.domain.services.profiles import ProfileService

router = APIRouter(prefix="/search", tags=["Talent Search"])
logger = structlog.get_logger()


@router.post("", response_model=SearchResponse)
async def search_learners(
    payload: SearchRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["master"])),
) -> SearchResponse:
    """Find learners whose competency averages meet every threshold."""
    criteria = [
        SearchCriterion(competency_id=item.competency_id, min_average=item.min_average)
        for item in payload.criteria
    ]
    try:
        matches = await ProfileService(session).search(criteria)
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    logger.info("talent_search_served", expert_id=user.user_id, results=len(matches))
    return SearchResponse(
        results=[
            SearchResultItem(
                learner=LearnerItem.from_domain(match.learner),
                matched_competencies=[
                    MatchedCompetencyItem(
                        competency_id=matched.competency.id,
                        title=matched.competency.title,
                        average=matched.average,
                    )
                    for matched in match.matched_competencies
                ],
            )
            for match in matches
        ]
    )
