from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.auth import Role
from src.domain.errors import (
    CompetencyNotFoundError,
    DomainValidationError,
    LearnerNotFoundError,
    PermissionDeniedError,
    RatingNotFoundError,
    UserNotFoundError,
)
from src.domain.models import (
    Competency,
    Completed,
    Rating,
    RaterType,
    RatingStatus,
    User,
    UserRecord,
)
from src.domain.services.rating_events import RatingEvent, RatingEventBus, get_event_bus
from src.infrastructure.db.converters import to_rating
from src.infrastructure.db.models import RatingModel
from src.infrastructure.repositories.records import RecordRepository

logger = structlog.get_logger(__name__)


class RatingValidationError(DomainValidationError):
    """Raised when a rating request or submission is invalid."""


class RatingAlreadyCompletedError(DomainValidationError):
    """Raised when a completed rating is submitted again."""


class RatingNotAssignedError(PermissionDeniedError):
    """Raised when someone other than the assigned rater submits a rating."""


@dataclass(frozen=True, slots=True)
class RatingWithDetails:
    """A rating joined with its competency and learner for rater dashboards."""

    rating: Rating
    competency: Competency | None
    learner: UserRecord | None


def _clean_comment(comment: str | None) -> str | None:
    if comment is None or not comment.strip():
        return None
    return comment


def _completed_state(score: int, comment: str | None) -> Completed:
    try:
        return Completed(score=score, comment=_clean_comment(comment))
    except ValueError as exc:
        raise RatingValidationError(str(exc)) from exc


class RatingService:
    """Rating requests, mentor ratings and the pending -> completed transition."""

    def __init__(self, session: AsyncSession, events: RatingEventBus | None = None) -> None:
        self.session = session
        self.records = RecordRepository(session)
        self.events = events or get_event_bus()

    async def record_rating(
        self,
        *,
        educator: User,
        learner_id: str,
        competency_id: str,
        score: int,
        comment: str | None = None,
        request_self: bool = False,
        master_rater_id: str | None = None,
    ) -> list[Rating]:
        """Store a completed mentor rating, optionally requesting follow-up ratings."""
        state = _completed_state(score, comment)
        await self._require_learner(learner_id, educator=educator)
        await self._require_competency(competency_id)
        if master_rater_id:
            await self._require_master(master_rater_id)

        rows = [
            RatingModel(
                learner_id=learner_id,
                competency_id=competency_id,
                rater_id=educator.user_id,
                rater_type=RaterType.MENTOR,
                status=RatingStatus.COMPLETED,
                score=state.score,
                comment=state.comment,
            )
        ]
        rows.extend(
            self._pending_rows(
                learner_id=learner_id,
                competency_id=competency_id,
                request_self=request_self,
                master_rater_id=master_rater_id,
            )
        )
        ratings = await self._commit_new(rows)

        logger.info(
            "mentor_rating_recorded",
            learner_id=learner_id,
            competency_id=competency_id,
            educator_id=educator.user_id,
            score=state.score,
            requests=len(rows) - 1,
        )
        return ratings

    async def request_ratings(
        self,
        *,
        learner_id: str,
        competency_id: str,
        request_self: bool = False,
        master_rater_id: str | None = None,
        educator: User | None = None,
    ) -> list[Rating]:
        """Create pending self and/or industry expert ratings.

        When ``educator`` is given the learner must belong to their organization.
        """
        if not request_self and not master_rater_id:
            raise RatingValidationError("Request a self rating, an expert rating, or both")

        await self._require_learner(learner_id, educator=educator)
        await self._require_competency(competency_id)
        if master_rater_id:
            await self._require_master(master_rater_id)

        rows = self._pending_rows(
            learner_id=learner_id,
            competency_id=competency_id,
            request_self=request_self,
            master_rater_id=master_rater_id,
        )
        ratings = await self._commit_new(rows)

        logger.info(
            "ratings_requested",
            learner_id=learner_id,
            competency_id=competency_id,
            self_requested=request_self,
            master_rater_id=master_rater_id,
        )
        return ratings

    async def submit_rating(
        self,
        *,
        rating_id: str,
        rater: User,
        score: int,
        comment: str | None = None,
    ) -> Rating:
        """Complete a pending rating. This is the only state transition."""
        row = await self.session.get(RatingModel, rating_id)
        if row is None:
            raise RatingNotFoundError(f"Rating '{rating_id}' not found")
        if row.rater_id != rater.user_id:
            raise RatingNotAssignedError("Rating is assigned to another rater")
        if row.status == RatingStatus.COMPLETED:
            raise RatingAlreadyCompletedError(f"Rating '{rating_id}' is already completed")

        state = _completed_state(score, comment)
        # only a pending row moves; no match means another submit completed it first
        result = await self.session.execute(
            update(RatingModel)
            .where(RatingModel.id == rating_id, RatingModel.status == RatingStatus.PENDING)
            .values(
                status=RatingStatus.COMPLETED,
                score=state.score,
                comment=state.comment,
                updated_at=datetime.now(UTC),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            raise RatingAlreadyCompletedError(f"Rating '{rating_id}' is already completed")

        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.exception("rating_submit_failed", rating_id=rating_id)
            raise

        await self.session.refresh(row)
        rating = to_rating(row)
        await self.events.publish(RatingEvent.from_rating("completed", rating))
        logger.info(
            "rating_submitted",
            rating_id=rating_id,
            rater_id=rater.user_id,
            rater_type=rating.rater_type.value,
            score=state.score,
        )
        return rating

    async def pending_queue(
        self, *, rater_id: str, rater_type: RaterType | None = None
    ) -> list[RatingWithDetails]:
        """Pending ratings assigned to a rater, oldest first."""
        ratings = await self.records.list_ratings(
            rater_id=rater_id, rater_type=rater_type, status=RatingStatus.PENDING
        )
        return await self._with_details(ratings)

    async def next_pending(
        self,
        *,
        rater_id: str,
        rater_type: RaterType | None = None,
        after: str | None = None,
    ) -> RatingWithDetails | None:
        """The next pending rating in queue order, after ``after`` when given.

        Passing the id of the item just rated or skipped continues the
        sequence; ``None`` means the queue is exhausted.
        """
        queue = await self.pending_queue(rater_id=rater_id, rater_type=rater_type)
        if after is None:
            return queue[0] if queue else None

        anchor = await self.records.get_rating(after)
        if anchor is None:
            raise RatingNotFoundError(f"Rating '{after}' not found")
        anchor_key = (anchor.created_at, anchor.id)
        for item in queue:
            if (item.rating.created_at, item.rating.id) > anchor_key:
                return item
        return None

    async def completed_for_rater(
        self, *, rater_id: str, rater_type: RaterType | None = None
    ) -> list[RatingWithDetails]:
        """Completed ratings by a rater, most recently updated first."""
        ratings = await self.records.list_ratings(
            rater_id=rater_id, rater_type=rater_type, status=RatingStatus.COMPLETED
        )
        ratings.sort(key=lambda rating: rating.updated_at or rating.created_at, reverse=True)
        return await self._with_details(ratings)

    async def list_for_learner(
        self, learner_id: str, *, status: RatingStatus | None = None
    ) -> list[Rating]:
        await self._require_learner(learner_id)
        return await self.records.list_ratings(learner_id=learner_id, status=status)

    def _pending_rows(
        self,
        *,
        learner_id: str,
        competency_id: str,
        request_self: bool,
        master_rater_id: str | None,
    ) -> list[RatingModel]:
        rows: list[RatingModel] = []
        if request_self:
            rows.append(
                RatingModel(
                    learner_id=learner_id,
                    competency_id=competency_id,
                    rater_id=learner_id,
                    rater_type=RaterType.SELF,
                    status=RatingStatus.PENDING,
                )
            )
        if master_rater_id:
            rows.append(
                RatingModel(
                    learner_id=learner_id,
                    competency_id=competency_id,
                    rater_id=master_rater_id,
                    rater_type=RaterType.MASTER,
                    status=RatingStatus.PENDING,
                )
            )
        return rows

    async def _commit_new(self, rows: list[RatingModel]) -> list[Rating]:
        self.session.add_all(rows)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.exception("rating_batch_failed", count=len(rows))
            raise

        ratings = [to_rating(row) for row in rows]
        for rating in ratings:
            await self.events.publish(RatingEvent.from_rating("created", rating))
        return ratings

    async def _with_details(self, ratings: list[Rating]) -> list[RatingWithDetails]:
        competencies = {c.id: c for c in await self.records.list_competencies()}
        learners = await self.records.get_users(rating.learner_id for rating in ratings)
        return [
            RatingWithDetails(
                rating=rating,
                competency=competencies.get(rating.competency_id),
                learner=learners.get(rating.learner_id),
            )
            for rating in ratings
        ]

    async def _require_learner(
        self, learner_id: str, *, educator: User | None = None
    ) -> UserRecord:
        learner = await self.records.get_user(learner_id)
        if learner is None or not learner.has_role(Role.LEARNER.value):
            raise LearnerNotFoundError(f"Learner '{learner_id}' not found")
        if educator is not None and educator.org_id != learner.org_id:
            logger.warning(
                "rating_org_mismatch",
                learner_id=learner_id,
                educator_id=educator.user_id,
                educator_org_id=educator.org_id,
            )
            raise PermissionDeniedError("Learner belongs to another organization")
        return learner

    async def _require_competency(self, competency_id: str) -> Competency:
        competency = await self.records.get_competency(competency_id)
        if competency is None:
            raise CompetencyNotFoundError(f"Competency '{competency_id}' not found")
        return competency

    async def _require_master(self, rater_id: str) -> UserRecord:
        expert = await self.records.get_user(rater_id)
        if expert is None or not expert.has_role(Role.MASTER.value):
            raise UserNotFoundError(f"Industry expert '{rater_id}' not found")
        return expert
