"""Demo data loading shared by the seed script and the test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from src.domain.models import (
    DEFAULT_RUBRIC,
    CompetencyType,
    OrgType,
    RaterType,
    RatingStatus,
)
from src.domain.reference_data import (
    COMPETENCY_DEFINITIONS,
    DEMO_ORG,
    EDUCATOR_ID,
    RATER_IDS,
    RATING_HISTORY,
    TEST_LEARNER_ID,
    USER_DEFINITIONS,
)

from .models import (
    ArtifactModel,
    CompetencyModel,
    OrganizationModel,
    RatingModel,
    UserModel,
)

logger = structlog.get_logger(__name__)

WIPE_ORDER = (RatingModel, ArtifactModel, CompetencyModel, UserModel, OrganizationModel)


async def wipe_all(session: AsyncSession) -> dict[str, int]:
    """Delete every row; returns the deleted row count per table."""
    deleted: dict[str, int] = {}
    for model in WIPE_ORDER:
        result = await session.execute(delete(model))
        deleted[model.__tablename__] = result.rowcount or 0
    return deleted


async def seed_demo_data(
    session: AsyncSession,
    *,
    org_id: str | None = None,
    include_ratings: bool = True,
    now: datetime | None = None,
) -> None:
    """Add the demo organization, accounts, competencies and rating history, then commit."""
    org_id = org_id or DEMO_ORG["id"]
    now = now or datetime.now(UTC)

    session.add(
        OrganizationModel(id=org_id, name=DEMO_ORG["name"], org_type=OrgType(DEMO_ORG["org_type"]))
    )
    for user in USER_DEFINITIONS:
        session.add(
            UserModel(
                id=user["id"],
                email=user["email"],
                display_name=user["display_name"],
                roles=list(user["roles"]),
                org_id=org_id,
            )
        )

    rubric = {str(score): label for score, label in DEFAULT_RUBRIC.items()}
    for index, definition in enumerate(COMPETENCY_DEFINITIONS):
        session.add(
            CompetencyModel(
                id=definition["id"],
                org_id=org_id,
                created_by=EDUCATOR_ID,
                title=definition["title"],
                description=definition["description"],
                type=CompetencyType(definition["type"]),
                rubric=rubric,
                # keeps catalog order stable when listed by creation time
                created_at=now - timedelta(days=365, seconds=-index),
            )
        )

    rating_count = add_rating_history(session, now=now) if include_ratings else 0

    await session.commit()
    logger.info(
        "demo_data_seeded",
        org_id=org_id,
        users=len(USER_DEFINITIONS),
        competencies=len(COMPETENCY_DEFINITIONS),
        ratings=rating_count,
    )


def add_rating_history(session: AsyncSession, *, now: datetime) -> int:
    """Stage the demo learner's rating history relative to ``now``; the caller commits."""
    for rating_id, competency_id, rater_type, score, comment, days_ago in RATING_HISTORY:
        created_at = now - timedelta(days=days_ago)
        session.add(
            RatingModel(
                id=rating_id,
                learner_id=TEST_LEARNER_ID,
                competency_id=competency_id,
                rater_id=RATER_IDS[rater_type],
                rater_type=RaterType(rater_type),
                status=RatingStatus.PENDING if score is None else RatingStatus.COMPLETED,
                score=score,
                comment=comment,
                created_at=created_at,
                updated_at=None if score is None else created_at,
            )
        )
    return len(RATING_HISTORY)
