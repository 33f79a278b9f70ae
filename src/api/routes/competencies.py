from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_current_user, get_db_session, require_roles
from src.api.schemas.competencies import CompetenciesResponse, CompetencyCreate, CompetencyItem
from src.domain import User
from src.domain.errors import DomainValidationError, NotFoundError
from src.domain.services.competencies import CompetencyService

router = APIRouter(prefix="/competencies", tags=["Competencies"])
logger = structlog.get_logger()


@router.get("", response_model=CompetenciesResponse)
async def list_competencies(
    org_id: str | None = None,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(get_current_user),
) -> CompetenciesResponse:
    """Return the competency catalog, optionally limited to one organization."""
    competencies = await CompetencyService(session).list_catalog(org_id=org_id)
    return CompetenciesResponse(
        competencies=[CompetencyItem.from_domain(competency) for competency in competencies]
    )


@router.post("", response_model=CompetencyItem, status_code=status.HTTP_201_CREATED)
async def create_competency(
    payload: CompetencyCreate,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["educator"])),
) -> CompetencyItem:
    """Add a competency to the educator's organization catalog."""
    try:
        competency = await CompetencyService(session).create(
            educator=user,
            title=payload.title,
            description=payload.description,
            competency_type=payload.type,
            rubric=payload.rubric,
        )
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return CompetencyItem.from_domain(competency)


@router.get("/{competency_id}", response_model=CompetencyItem)
async def get_competency(
    competency_id: str,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(get_current_user),
) -> CompetencyItem:
    try:
        competency = await CompetencyService(session).get(competency_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CompetencyItem.from_domain(competency)
