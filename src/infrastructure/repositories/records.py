from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from src.domain.models import (
    Artifact,
    Competency,
    Organization,
    Rating,
    RaterType,
    RatingStatus,
    UserRecord,
)
from src.infrastructure.db.converters import (
    to_artifact,
    to_competency,
    to_organization,
    to_rating,
    to_user,
)
from src.infrastructure.db.models import (
    ArtifactModel,
    CompetencyModel,
    OrganizationModel,
    RatingModel,
    UserModel,
)

if TYPE_CHECKING:
    from sqlalchemy import Select


class RecordRepository:
    """Read access to stored records, returned as domain objects."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_organization(self, org_id: str) -> Organization | None:
        row = await self.session.get(OrganizationModel, org_id)
        return to_organization(row) if row else None

    async def get_user(self, user_id: str) -> UserRecord | None:
        row = await self.session.get(UserModel, user_id)
        return to_user(row) if row else None

    async def get_users(self, user_ids: Iterable[str]) -> dict[str, UserRecord]:
        ids = set(user_ids)
        if not ids:
            return {}
        stmt = select(UserModel).where(UserModel.id.in_(ids))
        rows = (await self.session.execute(stmt)).scalars()
        return {row.id: to_user(row) for row in rows}

    async def list_users_with_role(
        self, role: str, *, org_id: str | None = None
    ) -> list[UserRecord]:
        # roles is a JSON list; filtered in Python so SQLite and Postgres behave alike
        stmt: Select[tuple[UserModel]] = select(UserModel).order_by(
            UserModel.created_at, UserModel.id
        )
        if org_id is not None:
            stmt = stmt.where(UserModel.org_id == org_id)
        rows = (await self.session.execute(stmt)).scalars().all()
        return [to_user(row) for row in rows if role in (row.roles or ())]

    async def get_competency(self, competency_id: str) -> Competency | None:
        row = await self.session.get(CompetencyModel, competency_id)
        return to_competency(row) if row else None

    async def list_competencies(self, *, org_id: str | None = None) -> list[Competency]:
        stmt: Select[tuple[CompetencyModel]] = select(CompetencyModel).order_by(
            CompetencyModel.created_at, CompetencyModel.id
        )
        if org_id is not None:
            stmt = stmt.where(CompetencyModel.org_id == org_id)
        rows = (await self.session.execute(stmt)).scalars().all()
        return [to_competency(row) for row in rows]

    async def get_rating(self, rating_id: str) -> Rating | None:
        row = await self.session.get(RatingModel, rating_id)
        return to_rating(row) if row else None

    async def list_ratings(
        self,
        *,
        learner_id: str | None = None,
        rater_id: str | None = None,
        rater_type: RaterType | None = None,
        status: RatingStatus | None = None,
    ) -> list[Rating]:
        stmt: Select[tuple[RatingModel]] = select(RatingModel).order_by(
            RatingModel.created_at, RatingModel.id
        )
        if learner_id is not None:
            stmt = stmt.where(RatingModel.learner_id == learner_id)
        if rater_id is not None:
            stmt = stmt.where(RatingModel.rater_id == rater_id)
        if rater_type is not None:
            stmt = stmt.where(RatingModel.rater_type == rater_type)
        if status is not None:
            stmt = stmt.where(RatingModel.status == status)
        rows = (await self.session.execute(stmt)).scalars().all()
        return [to_rating(row) for row in rows]

    async def get_artifact(self, artifact_id: str) -> Artifact | None:
        row = await self.session.get(ArtifactModel, artifact_id)
        return to_artifact(row) if row else None

    async def list_artifacts(self, *, learner_id: str) -> list[Artifact]:
        stmt: Select[tuple[ArtifactModel]] = (
            select(ArtifactModel)
            .where(ArtifactModel.learner_id == learner_id)
            .order_by(ArtifactModel.created_at.desc(), ArtifactModel.id)
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        return [to_artifact(row) for row in rows]
