from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from src.domain.models import (
    ArtifactFileType,
    CompetencyType,
    OrgType,
    RaterType,
    RatingStatus,
)

from .base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _enum_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


class OrganizationModel(Base):
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    org_type: Mapped[OrgType] = mapped_column(
        Enum(OrgType, name="org_type", values_callable=_enum_values),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserModel(Base):
    """Learners, educators and industry experts share one table."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    hidden_competency_ids: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    competency_display_order: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<UserModel(id={self.id}, email={self.email}, roles={self.roles})>"


class CompetencyModel(Base):
    __tablename__ = "competencies"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    org_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[CompetencyType] = mapped_column(
        Enum(CompetencyType, name="competency_type", values_callable=_enum_values),
        nullable=False,
    )
    # Keys are the scores "0".."4"; JSON object keys are always strings
    rubric: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class RatingModel(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        CheckConstraint(
            "(status = 'completed' AND score IS NOT NULL) OR "
            "(status = 'pending' AND score IS NULL)",
            name="ck_rating_score_matches_status",
        ),
        CheckConstraint(
            "score IS NULL OR (score >= 0 AND score <= 4)", name="ck_rating_score_range"
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    learner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    competency_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rater_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rater_type: Mapped[RaterType] = mapped_column(
        Enum(RaterType, name="rater_type", values_callable=_enum_values),
        nullable=False,
    )
    status: Mapped[RatingStatus] = mapped_column(
        Enum(RatingStatus, name="rating_status", values_callable=_enum_values),
        default=RatingStatus.PENDING,
        nullable=False,
        index=True,
    )
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ArtifactModel(Base):
    __tablename__ = "artifacts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    learner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    uploaded_by: Mapped[str] = mapped_column(String(64), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_type: Mapped[ArtifactFileType] = mapped_column(
        Enum(ArtifactFileType, name="artifact_file_type", values_callable=_enum_values),
        nullable=False,
    )
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    competency_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
