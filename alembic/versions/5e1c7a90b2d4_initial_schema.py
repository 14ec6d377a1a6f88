"""Initial GopherGather schema

Revision ID: 5e1c7a90b2d4
Revises:
Create Date: 2026-09-28 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5e1c7a90b2d4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
    )


def upgrade() -> None:
    """Create clubs, users, events and their satellite tables."""
    op.create_table(
        "clubs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(100), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("avatar_path", sa.String(500), nullable=True),
        sa.Column("user_type", sa.String(20), nullable=False, server_default="student"),
        sa.Column(
            "club_id",
            sa.String(36),
            sa.ForeignKey("clubs.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("email_confirmed", sa.Boolean(), server_default=sa.false()),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "club_admins",
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "club_id",
            sa.String(36),
            sa.ForeignKey("clubs.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("granted_by", sa.String(36), nullable=True),
        sa.Column("granted_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("original_text", sa.Text(), nullable=True),
        sa.Column("date", sa.String(10), nullable=True),
        sa.Column("start_time", sa.String(8), nullable=True),
        sa.Column("end_time", sa.String(8), nullable=True),
        sa.Column("location", sa.String(300), nullable=True),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("audience", sa.String(100), nullable=True),
        sa.Column("post_url", sa.String(500), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "club_id",
            sa.String(36),
            sa.ForeignKey("clubs.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_by",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at(),
        _updated_at(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("permanently_deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_events_status_date", "events", ["status", "date"])
    op.create_index("ix_events_deleted_at", "events", ["deleted_at"])

    op.create_table(
        "rsvps",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "event_id",
            sa.String(36),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="going"),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("event_id", "user_id", name="uq_rsvps_event_user"),
    )
    op.create_index("ix_rsvps_user_status", "rsvps", ["user_id", "status"])

    op.create_table(
        "vibe_checks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "event_id",
            sa.String(36),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("user_name", sa.String(200), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=True),
        sa.Column("vibe_rating", sa.Integer(), nullable=False),
        sa.Column("vibe_emoji", sa.String(10), nullable=False),
        sa.Column("comment", sa.String(200), nullable=True),
        _created_at(),
    )
    op.create_index("ix_vibe_checks_event_time", "vibe_checks", ["event_id", "created_at"])

    op.create_table(
        "event_audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.String(36), nullable=False),
        sa.Column("actor_id", sa.String(36), nullable=True),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("before_snapshot", JSONType, nullable=True),
        sa.Column("after_snapshot", JSONType, nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_event_audit_event_time", "event_audit_logs", ["event_id", "timestamp"]
    )
    op.create_index(
        "ix_event_audit_actor_time", "event_audit_logs", ["actor_id", "timestamp"]
    )

    op.create_table(
        "auth_sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "session_type", sa.String(30), nullable=False,
            server_default="campus-standard",
        ),
        _created_at(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_auth_sessions_expires_at", "auth_sessions", ["expires_at"])

    op.create_table(
        "auth_tokens",
        sa.Column("token", sa.String(128), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("purpose", sa.String(20), nullable=False),
        _created_at(),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "rate_limit_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bucket", sa.String(50), nullable=False),
        sa.Column("key", sa.String(128), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_rate_limit_bucket_key_ts", "rate_limit_events", ["bucket", "key", "timestamp"]
    )


def downgrade() -> None:
    """Drop everything in reverse dependency order."""
    op.drop_index("ix_rate_limit_bucket_key_ts", table_name="rate_limit_events")
    op.drop_table("rate_limit_events")
    op.drop_table("auth_tokens")
    op.drop_index("ix_auth_sessions_expires_at", table_name="auth_sessions")
    op.drop_table("auth_sessions")
    op.drop_index("ix_event_audit_actor_time", table_name="event_audit_logs")
    op.drop_index("ix_event_audit_event_time", table_name="event_audit_logs")
    op.drop_table("event_audit_logs")
    op.drop_index("ix_vibe_checks_event_time", table_name="vibe_checks")
    op.drop_table("vibe_checks")
    op.drop_index("ix_rsvps_user_status", table_name="rsvps")
    op.drop_table("rsvps")
    op.drop_index("ix_events_deleted_at", table_name="events")
    op.drop_index("ix_events_status_date", table_name="events")
    op.drop_table("events")
    op.drop_table("club_admins")
    op.drop_table("users")
    op.drop_table("clubs")
