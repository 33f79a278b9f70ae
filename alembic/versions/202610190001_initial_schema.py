"""Initial schema for organizations, users, competencies, ratings and artifacts

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None

org_type_enum = sa.Enum("education", "employment", name="org_type")
competency_type_enum = sa.Enum("hard", "soft", name="competency_type")
rater_type_enum = sa.Enum("self", "mentor", "master", name="rater_type")
rating_status_enum = sa.Enum("pending", "completed", name="rating_status")
artifact_file_type_enum = sa.Enum("pdf", "jpg", "png", "mp4", name="artifact_file_type")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("org_type", org_type_enum, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.Column("hidden_competency_ids", sa.JSON(), nullable=True),
        sa.Column("competency_display_order", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_org_id", "users", ["org_id"])

    op.create_table(
        "competencies",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("type", competency_type_enum, nullable=False),
        sa.Column("rubric", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_competencies_org_id", "competencies", ["org_id"])

    op.create_table(
        "ratings",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("learner_id", sa.String(length=64), nullable=False),
        sa.Column("competency_id", sa.String(length=64), nullable=False),
        sa.Column("rater_id", sa.String(length=64), nullable=False),
        sa.Column("rater_type", rater_type_enum, nullable=False),
        sa.Column("status", rating_status_enum, nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "(status = 'completed' AND score IS NOT NULL) OR "
            "(status = 'pending' AND score IS NULL)",
            name="ck_rating_score_matches_status",
        ),
        sa.CheckConstraint(
            "score IS NULL OR (score >= 0 AND score <= 4)",
            name="ck_rating_score_range",
        ),
    )
    op.create_index("ix_ratings_learner_id", "ratings", ["learner_id"])
    op.create_index("ix_ratings_competency_id", "ratings", ["competency_id"])
    op.create_index("ix_ratings_rater_id", "ratings", ["rater_id"])
    op.create_index("ix_ratings_status", "ratings", ["status"])

    op.create_table(
        "artifacts",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("learner_id", sa.String(length=64), nullable=False),
        sa.Column("uploaded_by", sa.String(length=64), nullable=False),
        sa.Column("file_url", sa.String(length=1024), nullable=False),
        sa.Column("file_type", artifact_file_type_enum, nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("storage_key", sa.String(length=512), nullable=False),
        sa.Column("competency_ids", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_artifacts_learner_id", "artifacts", ["learner_id"])


def downgrade() -> None:
    op.drop_index("ix_artifacts_learner_id", table_name="artifacts")
    op.drop_table("artifacts")
    for index in ("status", "rater_id", "competency_id", "learner_id"):
        op.drop_index(f"ix_ratings_{index}", table_name="ratings")
    op.drop_table("ratings")
    op.drop_index("ix_competencies_org_id", table_name="competencies")
    op.drop_table("competencies")
    op.drop_index("ix_users_org_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("organizations")

    bind = op.get_bind()
    for enum in (
        artifact_file_type_enum,
        rating_status_enum,
        rater_type_enum,
        competency_type_enum,
        org_type_enum,
    ):
        enum.drop(bind, checkfirst=True)
