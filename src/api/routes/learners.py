from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_db_session, get_rating_events, require_roles
from src.api.schemas.competencies import CompetencyItem
from src.api.schemas.learners import (
    AggregateItem,
    DisplayOrderUpdate,
    LearnerCreate,
    LearnerDashboardResponse,
    LearnerItem,
    LearnerOnboardRequest,
    LearnerOnboardResponse,
    LearnerOverviewResponse,
    LearnersResponse,
    PendingSelfAssessmentItem,
    ProgressSeriesItem,
    VisibilityUpdate,
)
from src.api.schemas.ratings import RatingItem
from src.domain import User, UserRecord
from src.domain.errors import DomainValidationError, NotFoundError
from src.domain.services.learners import LearnerService, OnboardingRating
from src.domain.services.rating_events import RatingEventBus

router = APIRouter(prefix="/learners", tags=["Learners"])
logger = structlog.get_logger()


@router.get("", response_model=LearnersResponse)
async def list_learners(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["educator"])),
) -> LearnersResponse:
    """Return the learners of the educator's organization."""
    learners = await LearnerService(session).list_learners(org_id=user.org_id)
    return LearnersResponse(learners=[LearnerItem.from_domain(learner) for learner in learners])


@router.post("", response_model=LearnerItem, status_code=status.HTTP_201_CREATED)
async def create_learner(
    payload: LearnerCreate,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["educator"])),
) -> LearnerItem:
    try:
        learner = await LearnerService(session).create(
            educator=user, display_name=payload.display_name, email=payload.email
        )
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return LearnerItem.from_domain(learner)


@router.post("/onboard", response_model=LearnerOnboardResponse, status_code=status.HTTP_201_CREATED)
async def onboard_learner(
    payload: LearnerOnboardRequest,
    session: AsyncSession = Depends(get_db_session),
    events: RatingEventBus = Depends(get_rating_events),
    user: User = Depends(require_roles(["educator"])),
) -> LearnerOnboardResponse:
    """Create a learner together with their reviewed mentor ratings."""
    ratings = [
        OnboardingRating(
            competency_id=entry.competency_id, score=entry.score, comment=entry.comment
        )
        for entry in payload.ratings
    ]
    try:
        learner, created = await LearnerService(session, events).onboard(
            educator=user,
            display_name=payload.display_name,
            email=payload.email,
            ratings=ratings,
        )
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return LearnerOnboardResponse(
        learner=LearnerItem.from_domain(learner),
        ratings=[RatingItem.from_domain(rating) for rating in created],
    )


@router.get("/experts", response_model=LearnersResponse)
async def list_experts(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["educator"])),
) -> LearnersResponse:
    """Industry experts an educator can ask for a rating."""
    experts = await LearnerService(session).list_experts(org_id=user.org_id)
    return LearnersResponse(learners=[LearnerItem.from_domain(expert) for expert in experts])


@router.get("/me/dashboard", response_model=LearnerDashboardResponse)
async def learner_dashboard(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["learner"])),
) -> LearnerDashboardResponse:
    try:
        dashboard = await LearnerService(session).dashboard(user.user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return LearnerDashboardResponse(
        learner=LearnerItem.from_domain(dashboard.learner),
        pending_self_assessments=[
            PendingSelfAssessmentItem(
                rating=RatingItem.from_domain(item.rating),
                competency=CompetencyItem.from_domain(item.competency) if item.competency else None,
            )
            for item in dashboard.pending_self_assessments
        ],
        competencies=[AggregateItem.from_domain(aggregate) for aggregate in dashboard.aggregates],
    )


@router.post("/me/visibility", response_model=LearnerItem)
async def update_visibility(
    payload: VisibilityUpdate,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["learner"])),
) -> LearnerItem:
    """Replace the competencies hidden from the learner's public profile."""
    _ensure_self(user, payload.learner_id)
    try:
        learner = await LearnerService(session).update_visibility(
            user.user_id, payload.hidden_competency_ids
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return LearnerItem.from_domain(learner)


@router.post("/me/display-order", response_model=LearnerItem)
async def update_display_order(
    payload: DisplayOrderUpdate,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["learner"])),
) -> LearnerItem:
    """Replace the custom order of competencies on the public profile."""
    _ensure_self(user, payload.learner_id)
    try:
        learner = await LearnerService(session).update_display_order(
            user.user_id, payload.competency_display_order
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return LearnerItem.from_domain(learner)


@router.get("/{learner_id}", response_model=LearnerItem)
async def get_learner(
    learner_id: str,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["educator"])),
) -> LearnerItem:
    learner = await _learner_in_org(session, learner_id, user)
    return LearnerItem.from_domain(learner)


@router.get("/{learner_id}/overview", response_model=LearnerOverviewResponse)
async def learner_overview(
    learner_id: str,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["educator"])),
) -> LearnerOverviewResponse:
    """Completed competency averages and progress over time for one learner."""
    await _learner_in_org(session, learner_id, user)
    overview = await LearnerService(session).overview(learner_id)
    return LearnerOverviewResponse(
        learner=LearnerItem.from_domain(overview.learner),
        competencies=[AggregateItem.from_domain(aggregate) for aggregate in overview.aggregates],
        progress=[ProgressSeriesItem.from_domain(series) for series in overview.progress],
    )


def _ensure_self(user: User, learner_id: str | None) -> None:
    if learner_id is not None and learner_id != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Learners can only update their own profile",
        )


async def _learner_in_org(session: AsyncSession, learner_id: str, user: User) -> UserRecord:
    try:
        learner = await LearnerService(session).get_learner(learner_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if learner.org_id != user.org_id:
        logger.warning(
            "learner_org_mismatch",
            learner_id=learner_id,
            educator_id=user.user_id,
            educator_org_id=user.org_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Learner belongs to another organization",
        )
    return learner
