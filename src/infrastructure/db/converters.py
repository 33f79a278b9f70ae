"""Row to domain record conversion at the storage boundary."""

from __future__ import annotations

from datetime import UTC, datetime

from src.domain.models import (
    Artifact,
    Competency,
    Completed,
    Organization,
    Pending,
    Rating,
    RatingState,
    RatingStatus,
    UserRecord,
)

from .models import (
    ArtifactModel,
    CompetencyModel,
    OrganizationModel,
    RatingModel,
    UserModel,
)


class InconsistentRecordError(ValueError):
    """Raised when a stored row violates a domain invariant."""


def as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on read
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _optional_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def rating_state(status: RatingStatus, score: int | None, comment: str | None) -> RatingState:
    if status == RatingStatus.COMPLETED:
        if score is None:
            raise InconsistentRecordError("completed rating is missing its score")
        return Completed(score=score, comment=comment)
    if score is not None:
        raise InconsistentRecordError("pending rating must not carry a score")
    return Pending()


def to_organization(row: OrganizationModel) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        org_type=row.org_type,
        created_at=as_utc(row.created_at),
    )


def to_user(row: UserModel) -> UserRecord:
    return UserRecord(
        id=row.id,
        display_name=row.display_name,
        email=row.email,
        org_id=row.org_id,
        roles=tuple(row.roles or ()),
        hidden_competency_ids=tuple(row.hidden_competency_ids or ()),
        competency_display_order=tuple(row.competency_display_order or ()),
        created_at=as_utc(row.created_at),
    )


def to_competency(row: CompetencyModel) -> Competency:
    rubric = {int(score): label for score, label in row.rubric.items()} if row.rubric else None
    return Competency(
        id=row.id,
        title=row.title,
        description=row.description,
        type=row.type,
        org_id=row.org_id,
        created_by=row.created_by,
        rubric=rubric,
        created_at=as_utc(row.created_at),
    )


def to_rating(row: RatingModel) -> Rating:
    try:
        state = rating_state(row.status, row.score, row.comment)
    except ValueError as exc:
        raise InconsistentRecordError(f"rating {row.id}: {exc}") from exc
    return Rating(
        id=row.id,
        learner_id=row.learner_id,
        competency_id=row.competency_id,
        rater_id=row.rater_id,
        rater_type=row.rater_type,
        state=state,
        created_at=as_utc(row.created_at),
        updated_at=_optional_utc(row.updated_at),
    )


def to_artifact(row: ArtifactModel) -> Artifact:
    return Artifact(
        id=row.id,
        learner_id=row.learner_id,
        uploaded_by=row.uploaded_by,
        file_url=row.file_url,
        file_type=row.file_type,
        file_size=row.file_size,
        file_name=row.file_name,
        competency_ids=tuple(row.competency_ids or ()),
        storage_key=row.storage_key,
        created_at=as_utc(row.created_at),
    )
