from __future__ import annotations

from collections.abc import AsyncIterator

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_current_user, get_db_session, get_rating_events, require_roles
from src.api.schemas.ratings import (
    NextPendingResponse,
    RatingItem,
    RatingQueueItem,
    RatingQueueResponse,
    RatingRecordRequest,
    RatingRequestCreate,
    RatingsResponse,
    RatingSubmitRequest,
)
from src.core.auth import Role
from src.domain import User
from src.domain.errors import DomainValidationError, NotFoundError, PermissionDeniedError
from src.domain.models import RaterType
from src.domain.services.rating_events import RatingEventBus
from src.domain.services.ratings import (
    RatingAlreadyCompletedError,
    RatingService,
    RatingWithDetails,
)

router = APIRouter(prefix="/ratings", tags=["Ratings"])
logger = structlog.get_logger()

STREAM_KEEPALIVE_SECONDS = 15.0


def _queue_item(item: RatingWithDetails) -> RatingQueueItem:
    return RatingQueueItem(
        rating=RatingItem.from_domain(item.rating),
        competency_title=item.competency.title if item.competency else None,
        competency_description=item.competency.description if item.competency else None,
        learner_name=item.learner.display_name if item.learner else None,
    )


def _rater_type_for(user: User) -> RaterType | None:
    """Learners rate themselves and masters rate as experts; both roles see everything."""
    is_learner = Role.LEARNER.value in user.roles
    is_master = Role.MASTER.value in user.roles
    if is_learner and not is_master:
        return RaterType.SELF
    if is_master and not is_learner:
        return RaterType.MASTER
    return None


@router.post("", response_model=RatingsResponse, status_code=status.HTTP_201_CREATED)
async def record_rating(
    payload: RatingRecordRequest,
    session: AsyncSession = Depends(get_db_session),
    events: RatingEventBus = Depends(get_rating_events),
    user: User = Depends(require_roles(["educator"])),
) -> RatingsResponse:
    """Record a mentor rating and optionally request self and expert ratings."""
    try:
        ratings = await RatingService(session, events).record_rating(
            educator=user,
            learner_id=payload.learner_id,
            competency_id=payload.competency_id,
            score=payload.score,
            comment=payload.comment,
            request_self=payload.request_self,
            master_rater_id=payload.master_rater_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RatingsResponse(ratings=[RatingItem.from_domain(rating) for rating in ratings])


@router.post("/requests", response_model=RatingsResponse, status_code=status.HTTP_201_CREATED)
async def request_ratings(
    payload: RatingRequestCreate,
    session: AsyncSession = Depends(get_db_session),
    events: RatingEventBus = Depends(get_rating_events),
    user: User = Depends(require_roles(["educator"])),
) -> RatingsResponse:
    try:
        ratings = await RatingService(session, events).request_ratings(
            educator=user,
            learner_id=payload.learner_id,
            competency_id=payload.competency_id,
            request_self=payload.request_self,
            master_rater_id=payload.master_rater_id,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RatingsResponse(ratings=[RatingItem.from_domain(rating) for rating in ratings])


@router.post("/{rating_id}/submit", response_model=RatingItem)
async def submit_rating(
    rating_id: str,
    payload: RatingSubmitRequest,
    session: AsyncSession = Depends(get_db_session),
    events: RatingEventBus = Depends(get_rating_events),
    user: User = Depends(get_current_user),
) -> RatingItem:
    """Complete a pending rating assigned to the caller."""
    try:
        rating = await RatingService(session, events).submit_rating(
            rating_id=rating_id, rater=user, score=payload.score, comment=payload.comment
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except RatingAlreadyCompletedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return RatingItem.from_domain(rating)


@router.get("/pending", response_model=RatingQueueResponse)
async def pending_ratings(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["learner", "master"])),
) -> RatingQueueResponse:
    """Pending ratings assigned to the caller, oldest first."""
    queue = await RatingService(session).pending_queue(
        rater_id=user.user_id, rater_type=_rater_type_for(user)
    )
    return RatingQueueResponse(items=[_queue_item(item) for item in queue])


@router.get("/pending/next", response_model=NextPendingResponse)
async def next_pending_rating(
    after: str | None = Query(None, description="Id of the rating just completed or skipped"),
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["learner", "master"])),
) -> NextPendingResponse:
    """Step through the pending queue one rating at a time."""
    try:
        item = await RatingService(session).next_pending(
            rater_id=user.user_id, rater_type=_rater_type_for(user), after=after
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return NextPendingResponse(item=_queue_item(item) if item else None)


@router.get("/completed", response_model=RatingQueueResponse)
async def completed_ratings(
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["learner", "master"])),
) -> RatingQueueResponse:
    completed = await RatingService(session).completed_for_rater(
        rater_id=user.user_id, rater_type=_rater_type_for(user)
    )
    return RatingQueueResponse(items=[_queue_item(item) for item in completed])


@router.get("/stream")
async def stream_rating_events(
    request: Request,
    learner_id: str | None = None,
    rater_id: str | None = None,
    events: RatingEventBus = Depends(get_rating_events),
    user: User = Depends(get_current_user),
) -> StreamingResponse:
    """Server-sent events for ratings created or completed.

    Learners and experts only see their own events; educators may filter by
    learner or rater.
    """
    if Role.EDUCATOR.value not in user.roles:
        if Role.LEARNER.value in user.roles:
            learner_id, rater_id = user.user_id, None
        else:
            learner_id, rater_id = None, user.user_id

    async def event_source() -> AsyncIterator[str]:
        async with events.subscribe(learner_id=learner_id, rater_id=rater_id) as subscription:
            logger.info(
                "rating_stream_opened",
                user_id=user.user_id,
                learner_id=learner_id,
                rater_id=rater_id,
            )
            yield ": connected\n\n"
            while not subscription.closed and not await request.is_disconnected():
                event = await subscription.get(timeout=STREAM_KEEPALIVE_SECONDS)
                if event is None:
                    yield ": keepalive\n\n"
                    continue
                yield f"event: rating.{event.kind}\ndata: {event.to_json()}\n\n"
        logger.info("rating_stream_closed", user_id=user.user_id)

    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
