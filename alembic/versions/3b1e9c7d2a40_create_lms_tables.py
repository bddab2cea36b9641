"""create lms tables

Revision ID: 3b1e9c7d2a40
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1e9c7d2a40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _uuid_fk(name: str, target: str, ondelete: str | None = None) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column(
            "role", sa.String(length=16), nullable=False, server_default="STUDENT"
        ),
        sa.Column("created_at", sa.Integer(), nullable=False),
    )

    op.create_table(
        "courses",
        _uuid_pk(),
        _uuid_fk("owner_id", "users.id"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="Draft"
        ),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("level", sa.String(length=32), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.CheckConstraint("price IS NULL OR price >= 0", name="ck_courses_price"),
    )
    op.create_index("ix_courses_owner_id", "courses", ["owner_id"])

    op.create_table(
        "chapters",
        _uuid_pk(),
        _uuid_fk("course_id", "courses.id", ondelete="CASCADE"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_free", sa.Boolean(), nullable=False, server_default="false"),
        sa.UniqueConstraint("course_id", "position"),
        sa.CheckConstraint("position >= 0", name="ck_chapters_position"),
    )

    op.create_table(
        "lessons",
        _uuid_pk(),
        _uuid_fk("chapter_id", "chapters.id", ondelete="CASCADE"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_free", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("video_url", sa.Text(), nullable=True),
        sa.UniqueConstraint("chapter_id", "position"),
        sa.CheckConstraint("position >= 0", name="ck_lessons_position"),
    )

    op.create_table(
        "enrollments",
        _uuid_pk(),
        _uuid_fk("user_id", "users.id"),
        _uuid_fk("course_id", "courses.id"),
        sa.Column("enrolled_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_id", "course_id"),
    )

    op.create_table(
        "lesson_progress",
        _uuid_pk(),
        _uuid_fk("user_id", "users.id"),
        _uuid_fk("lesson_id", "lessons.id"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("updated_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_id", "lesson_id"),
    )

    op.create_table(
        "certificates",
        _uuid_pk(),
        _uuid_fk("user_id", "users.id"),
        _uuid_fk("course_id", "courses.id"),
        sa.Column("issued_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_id", "course_id"),
    )

    op.create_table(
        "reviews",
        _uuid_pk(),
        _uuid_fk("user_id", "users.id"),
        _uuid_fk("course_id", "courses.id"),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_id", "course_id"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )


def downgrade() -> None:
    op.drop_table("reviews")
    op.drop_table("certificates")
    op.drop_table("lesson_progress")
    op.drop_table("enrollments")
    op.drop_table("lessons")
    op.drop_table("chapters")
    op.drop_index("ix_courses_owner_id", table_name="courses")
    op.drop_table("courses")
    op.drop_table("users")
