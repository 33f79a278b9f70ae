from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from src.domain.errors import CompetencyNotFoundError, DomainValidationError
from src.domain.models import MAX_SCORE, MIN_SCORE, Competency, CompetencyType, User
from src.infrastructure.db.converters import to_competency
from src.infrastructure.db.models import CompetencyModel
from src.infrastructure.repositories.records import RecordRepository

logger = structlog.get_logger(__name__)


class CompetencyService:
    """Educator-managed competency catalog. Competencies are never edited or deleted."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.records = RecordRepository(session)

    async def create(
        self,
        *,
        educator: User,
        title: str,
        description: str,
        competency_type: CompetencyType,
        rubric: dict[int, str] | None = None,
    ) -> Competency:
        if not educator.org_id:
            raise DomainValidationError("Educator is not attached to an organization")
        if rubric is not None and set(rubric) != set(range(MIN_SCORE, MAX_SCORE + 1)):
            raise DomainValidationError("Rubric must label every score from 0 to 4")

        row = CompetencyModel(
            org_id=educator.org_id,
            created_by=educator.user_id,
            title=title.strip(),
            description=description.strip(),
            type=competency_type,
            rubric={str(score): label for score, label in rubric.items()} if rubric else None,
        )
        self.session.add(row)
        await self.session.commit()

        logger.info(
            "competency_created",
            competency_id=row.id,
            title=row.title,
            org_id=row.org_id,
            educator_id=educator.user_id,
        )
        return to_competency(row)

    async def list_catalog(self, *, org_id: str | None = None) -> list[Competency]:
        return await self.records.list_competencies(org_id=org_id)

    async def get(self, competency_id: str) -> Competency:
        competency = await self.records.get_competency(competency_id)
        if competency is None:
            raise CompetencyNotFoundError(f"Competency '{competency_id}' not found")
        return competency
