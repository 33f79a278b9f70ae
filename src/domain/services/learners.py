from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.auth import Role
from src.domain.errors import DomainValidationError, LearnerNotFoundError
from src.domain.models import (
    Competency,
    Completed,
    Rating,
    RaterType,
    RatingStatus,
    User,
    UserRecord,
)
from src.domain.portfolio import (
    CompetencyAggregate,
    ProgressSeries,
    aggregate_ratings,
    progress_series,
)
from src.domain.services.rating_events import RatingEvent, RatingEventBus, get_event_bus
from src.infrastructure.db.converters import to_rating, to_user
from src.infrastructure.db.models import RatingModel, UserModel
from src.infrastructure.repositories.records import RecordRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class OnboardingRating:
    """A reviewed (possibly AI-suggested) mentor rating from the onboarding wizard."""

    competency_id: str | None
    score: int
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class PendingSelfAssessment:
    rating: Rating
    competency: Competency | None


@dataclass(frozen=True, slots=True)
class LearnerOverview:
    """Educator view of one learner."""

    learner: UserRecord
    aggregates: list[CompetencyAggregate]
    progress: list[ProgressSeries]


@dataclass(frozen=True, slots=True)
class LearnerDashboard:
    """A learner's own view: self-assessments to do and current averages."""

    learner: UserRecord
    pending_self_assessments: list[PendingSelfAssessment]
    aggregates: list[CompetencyAggregate]


def _unique(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class LearnerService:
    def __init__(self, session: AsyncSession, events: RatingEventBus | None = None) -> None:
        self.session = session
        self.records = RecordRepository(session)
        self.events = events or get_event_bus()

    async def create(self, *, educator: User, display_name: str, email: str) -> UserRecord:
        row = self._learner_row(educator, display_name=display_name, email=email)
        self.session.add(row)
        await self.session.commit()

        logger.info("learner_created", learner_id=row.id, org_id=row.org_id)
        return to_user(row)

    async def onboard(
        self,
        *,
        educator: User,
        display_name: str,
        email: str,
        ratings: Sequence[OnboardingRating],
    ) -> tuple[UserRecord, list[Rating]]:
        """Create a learner and their reviewed mentor ratings in a single commit."""
        reviewed = [entry for entry in ratings if entry.competency_id]
        catalog = {competency.id for competency in await self.records.list_competencies()}
        requested = {entry.competency_id for entry in reviewed if entry.competency_id}
        unknown = sorted(requested - catalog)
        if unknown:
            raise DomainValidationError(f"Unknown competency id(s): {', '.join(unknown)}")

        learner_row = self._learner_row(educator, display_name=display_name, email=email)
        rating_rows: list[RatingModel] = []
        for entry in reviewed:
            try:
                state = Completed(score=entry.score, comment=entry.comment or None)
            except ValueError as exc:
                raise DomainValidationError(str(exc)) from exc
            rating_rows.append(
                RatingModel(
                    learner_id=learner_row.id,
                    competency_id=entry.competency_id,
                    rater_id=educator.user_id,
                    rater_type=RaterType.MENTOR,
                    status=RatingStatus.COMPLETED,
                    score=state.score,
                    comment=state.comment,
                )
            )

        self.session.add(learner_row)
        self.session.add_all(rating_rows)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            logger.exception("learner_onboarding_failed", email=email, ratings=len(rating_rows))
            raise

        created = [to_rating(row) for row in rating_rows]
        for rating in created:
            await self.events.publish(RatingEvent.from_rating("created", rating))

        logger.info(
            "learner_onboarded",
            learner_id=learner_row.id,
            org_id=learner_row.org_id,
            ratings=len(created),
            skipped=len(ratings) - len(reviewed),
        )
        return to_user(learner_row), created

    async def list_learners(self, *, org_id: str | None) -> list[UserRecord]:
        return await self.records.list_users_with_role(Role.LEARNER.value, org_id=org_id)

    async def list_experts(self, *, org_id: str | None) -> list[UserRecord]:
        return await self.records.list_users_with_role(Role.MASTER.value, org_id=org_id)

    async def get_learner(self, learner_id: str) -> UserRecord:
        learner = await self.records.get_user(learner_id)
        if learner is None or not learner.has_role(Role.LEARNER.value):
            raise LearnerNotFoundError(f"Learner '{learner_id}' not found")
        return learner

    async def update_visibility(self, learner_id: str, hidden_ids: Iterable[str]) -> UserRecord:
        """Replace the list of competencies hidden from the public profile."""
        row = await self._learner_model(learner_id)
        row.hidden_competency_ids = _unique(hidden_ids)
        row.updated_at = datetime.now(UTC)
        await self.session.commit()

        logger.info(
            "learner_visibility_updated",
            learner_id=learner_id,
            hidden=len(row.hidden_competency_ids),
        )
        return to_user(row)

    async def update_display_order(
        self, learner_id: str, display_order: Iterable[str]
    ) -> UserRecord:
        """Replace the custom public ordering of competencies."""
        row = await self._learner_model(learner_id)
        row.competency_display_order = _unique(display_order)
        row.updated_at = datetime.now(UTC)
        await self.session.commit()

        logger.info(
            "learner_display_order_updated",
            learner_id=learner_id,
            ordered=len(row.competency_display_order),
        )
        return to_user(row)

    async def overview(self, learner_id: str) -> LearnerOverview:
        learner = await self.get_learner(learner_id)
        ratings = await self.records.list_ratings(
            learner_id=learner_id, status=RatingStatus.COMPLETED
        )
        competencies = await self.records.list_competencies()
        return LearnerOverview(
            learner=learner,
            aggregates=aggregate_ratings(ratings, competencies),
            progress=progress_series(ratings, competencies),
        )

    async def dashboard(self, learner_id: str) -> LearnerDashboard:
        learner = await self.get_learner(learner_id)
        ratings = await self.records.list_ratings(learner_id=learner_id)
        competencies = await self.records.list_competencies()
        by_id = {competency.id: competency for competency in competencies}

        pending = [
            PendingSelfAssessment(rating=rating, competency=by_id.get(rating.competency_id))
            for rating in ratings
            if rating.status == RatingStatus.PENDING and rating.rater_type == RaterType.SELF
        ]
        return LearnerDashboard(
            learner=learner,
            pending_self_assessments=pending,
            aggregates=aggregate_ratings(ratings, competencies),
        )

    async def remove_extra_learners(self, keep_ids: Iterable[str]) -> list[str]:
        """Delete every learner account not in ``keep_ids``. Ratings are left untouched."""
        keep = set(keep_ids)
        learners = await self.records.list_users_with_role(Role.LEARNER.value)
        doomed = [learner.id for learner in learners if learner.id not in keep]
        if not doomed:
            logger.info("learner_cleanup_noop", kept=sorted(keep))
            return []

        await self.session.execute(delete(UserModel).where(UserModel.id.in_(doomed)))
        await self.session.commit()
        logger.info("learner_cleanup_completed", deleted=doomed)
        return doomed

    def _learner_row(self, educator: User, *, display_name: str, email: str) -> UserModel:
        if not educator.org_id:
            raise DomainValidationError("Educator is not attached to an organization")
        return UserModel(
            id=str(uuid.uuid4()),
            org_id=educator.org_id,
            display_name=display_name.strip(),
            email=email,
            roles=[Role.LEARNER.value],
        )

    async def _learner_model(self, learner_id: str) -> UserModel:
        row = await self.session.get(UserModel, learner_id)
        if row is None or Role.LEARNER.value not in (row.roles or ()):
            raise LearnerNotFoundError(f"Learner '{learner_id}' not found")
        return row
