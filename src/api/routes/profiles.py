from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_db_session
from src.api.schemas.artifacts import ArtifactItem
from src.api.schemas.competencies import CompetencyItem
from src.api.schemas.profiles import (
    OrganizationItem,
    PortfolioEntryItem,
    PublicProfileResponse,
)
from src.domain.errors import NotFoundError
from src.domain.services.profiles import ProfileService

router = APIRouter(prefix="/profiles", tags=["Profiles"])
logger = structlog.get_logger()


@router.get("/{learner_id}", response_model=PublicProfileResponse)
async def public_profile(
    learner_id: str,
    session: AsyncSession = Depends(get_db_session),
) -> PublicProfileResponse:
    """Public portfolio: visible competencies in the learner's chosen order."""
    try:
        profile = await ProfileService(session).public_profile(learner_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    organization = profile.organization
    return PublicProfileResponse(
        learner_id=profile.learner.id,
        display_name=profile.learner.display_name,
        organization=(
            OrganizationItem(
                id=organization.id, name=organization.name, org_type=organization.org_type
            )
            if organization
            else None
        ),
        competencies=[
            PortfolioEntryItem(
                competency=CompetencyItem.from_domain(entry.aggregate.competency),
                average=entry.aggregate.average,
                rating_count=len(entry.aggregate.ratings),
                rater_types=list(entry.rater_types),
                artifacts=[ArtifactItem.from_domain(artifact) for artifact in entry.artifacts],
            )
            for entry in profile.portfolio
        ],
    )
