from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from src.core.auth import Role
from src.domain.errors import DomainValidationError, LearnerNotFoundError
from src.domain.models import Organization, RatingStatus, UserRecord
from src.domain.portfolio import (
    LearnerMatch,
    PortfolioEntry,
    SearchCriterion,
    build_portfolio,
    match_learners,
)
from src.infrastructure.repositories.records import RecordRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PublicProfile:
    learner: UserRecord
    organization: Organization | None
    portfolio: list[PortfolioEntry]


class ProfileService:
    """Public portfolios and talent search."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.records = RecordRepository(session)

    async def public_profile(self, learner_id: str) -> PublicProfile:
        learner = await self.records.get_user(learner_id)
        if learner is None or not learner.has_role(Role.LEARNER.value):
            raise LearnerNotFoundError(f"Learner '{learner_id}' not found")

        organization = await self.records.get_organization(learner.org_id)
        ratings = await self.records.list_ratings(
            learner_id=learner_id, status=RatingStatus.COMPLETED
        )
        competencies = await self.records.list_competencies()
        artifacts = await self.records.list_artifacts(learner_id=learner_id)

        return PublicProfile(
            learner=learner,
            organization=organization,
            portfolio=build_portfolio(learner, ratings, competencies, artifacts),
        )

    async def search(self, criteria: Sequence[SearchCriterion]) -> list[LearnerMatch]:
        """Learners meeting every (competency, minimum average) criterion."""
        if not criteria:
            raise DomainValidationError("At least one search criterion is required")
        seen: set[str] = set()
        for criterion in criteria:
            if criterion.competency_id in seen:
                raise DomainValidationError(
                    f"Competency '{criterion.competency_id}' appears more than once"
                )
            seen.add(criterion.competency_id)

        learners = await self.records.list_users_with_role(Role.LEARNER.value)
        ratings = await self.records.list_ratings(status=RatingStatus.COMPLETED)
        competencies = await self.records.list_competencies()

        matches = match_learners(learners, ratings, competencies, criteria)
        logger.info(
            "talent_search",
            criteria=[(c.competency_id, c.min_average) for c in criteria],
            candidates=len(learners),
            matches=len(matches),
        )
        return matches
