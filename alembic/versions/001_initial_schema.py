"""Initial LearnHub schema.

Creates users, the coin ledger, the course catalog and enrollments, the
content library, doubts, thoughts, notifications with their per-recipient
state, and user settings.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("role", sa.String(16), server_default="user", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("coins", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("coins >= 0", name="ck_users_coins_non_negative"),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    op.create_table(
        "user_settings",
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("notifications", JSON, nullable=False),
        sa.Column("privacy", JSON, nullable=False),
        sa.Column("preferences", JSON, nullable=False),
        sa.Column("security", JSON, nullable=False),
        *_timestamps(),
    )

    # --- catalog ---
    op.create_table(
        "courses",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("instructor", sa.String(120), nullable=False),
        sa.Column("duration", sa.String(60), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), server_default="0", nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), server_default="published", nullable=False),
        sa.Column("category", sa.String(60), nullable=False),
        sa.Column("level", sa.String(16), server_default="beginner", nullable=False),
        sa.Column("enrolled_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("rating", sa.Float(), server_default="0", nullable=False),
        sa.Column("created_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('draft', 'published', 'archived')", name="ck_courses_status"),
        sa.CheckConstraint("level IN ('beginner', 'intermediate', 'advanced')", name="ck_courses_level"),
        sa.CheckConstraint("price >= 0", name="ck_courses_price_non_negative"),
        sa.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_courses_rating_range"),
    )
    op.create_index("ix_courses_status_created", "courses", ["status", "created_at"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.BigInteger(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("progress", sa.Integer(), server_default="0", nullable=False),
        sa.Column("completed_lessons", JSON, nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("certificate_issued", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("review", sa.Text(), nullable=True),
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
        sa.CheckConstraint("status IN ('active', 'completed', 'dropped')", name="ck_enrollments_status"),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_enrollments_progress_range"),
    )
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])

    op.create_table(
        "content_items",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("size_bytes", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("duration", sa.String(60), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("course_id", sa.BigInteger(), sa.ForeignKey("courses.id", ondelete="SET NULL"), nullable=True),
        sa.Column("uploaded_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(16), server_default="published", nullable=False),
        sa.Column("downloads", sa.Integer(), server_default="0", nullable=False),
        sa.Column("views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("tags", JSON, nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "type IN ('video', 'pdf', 'image', 'audio', 'document', 'other')", name="ck_content_items_type"
        ),
        sa.CheckConstraint(
            "status IN ('draft', 'processing', 'published', 'archived')", name="ck_content_items_status"
        ),
    )
    op.create_index("ix_content_items_course_id", "content_items", ["course_id"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), server_default="general", nullable=False),
        sa.Column("target_audience", sa.String(16), server_default="all", nullable=False),
        sa.Column("priority", sa.String(16), server_default="medium", nullable=False),
        sa.Column("status", sa.String(16), server_default="sent", nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(64), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('draft', 'scheduled', 'sent')", name="ck_notifications_status"),
        sa.CheckConstraint(
            "target_audience IN ('all', 'students', 'instructors', 'specific')",
            name="ck_notifications_target_audience",
        ),
        sa.CheckConstraint("priority IN ('low', 'medium', 'high', 'urgent')", name="ck_notifications_priority"),
    )
    op.create_index("ix_notifications_status_scheduled", "notifications", ["status", "scheduled_for"])

    for table, extra in (
        ("notification_recipients", []),
        (
            "notification_reads",
            [sa.Column("read_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)],
        ),
        (
            "notification_dismissals",
            [sa.Column("dismissed_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)],
        ),
    ):
        op.create_table(
            table,
            sa.Column(
                "notification_id",
                sa.BigInteger(),
                sa.ForeignKey("notifications.id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            *extra,
        )
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])

    # --- doubts & thoughts ---
    op.create_table(
        "doubts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("question", sa.String(1000), nullable=False),
        sa.Column("asked_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("response_title", sa.String(200), nullable=True),
        sa.Column("response_description", sa.String(2000), nullable=True),
        sa.Column("response_url", sa.Text(), nullable=True),
        sa.Column("answered_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('pending', 'answered', 'closed')", name="ck_doubts_status"),
    )
    op.create_index("ix_doubts_asked_by", "doubts", ["asked_by"])
    op.create_index("ix_doubts_status_created", "doubts", ["status", "created_at"])

    op.create_table(
        "thoughts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.String(1000), nullable=False),
        sa.Column("submitted_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        sa.Column("reviewed_by", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.String(500), nullable=True),
        sa.Column(
            "notification_id",
            sa.BigInteger(),
            sa.ForeignKey("notifications.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_thoughts_status"),
    )
    op.create_index("ix_thoughts_submitted_by", "thoughts", ["submitted_by"])
    op.create_index("ix_thoughts_status_created", "thoughts", ["status", "created_at"])

    # --- coin ledger ---
    op.create_table(
        "coin_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("reason", sa.String(255), nullable=False),
        sa.Column(
            "related_doubt_id", sa.BigInteger(), sa.ForeignKey("doubts.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column(
            "related_thought_id", sa.BigInteger(), sa.ForeignKey("thoughts.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("kind IN ('earned', 'spent', 'bonus')", name="ck_coin_transactions_kind"),
        sa.CheckConstraint("amount <> 0", name="ck_coin_transactions_amount_non_zero"),
    )
    op.create_index("ix_coin_transactions_user_created", "coin_transactions", ["user_id", "created_at"])
    op.create_index("ix_coin_transactions_related_doubt_id", "coin_transactions", ["related_doubt_id"])
    op.create_index("ix_coin_transactions_related_thought_id", "coin_transactions", ["related_thought_id"])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "coin_transactions",
        "thoughts",
        "doubts",
        "notification_dismissals",
        "notification_reads",
        "notification_recipients",
        "notifications",
        "content_items",
        "enrollments",
        "courses",
        "user_settings",
        "users",
    ):
        op.drop_table(table)
