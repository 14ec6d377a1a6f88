"""
gophergather.database.models — SQLAlchemy 2.0 Data Models
==========================================================

Tables:
- users                 — Accounts (students, club admins, admins)
- clubs                 — Student organisations that own events
- club_admins           — Which users manage which club
- events                — Campus events, soft-deletable
- rsvps                 — One row per (event, user)
- vibe_checks           — Emoji-rated reactions attached to an event
- event_audit_logs      — Append-only trail of event mutations
- auth_sessions         — Server-side session rows behind each JWT
- auth_tokens           — One-time e-mail confirmation / password reset tokens
- rate_limit_events     — Durable sliding-window counters
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all GopherGather ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class UserType(enum.StrEnum):
    STUDENT = "student"
    CLUB_ADMIN = "club_admin"
    ADMIN = "admin"


class EventStatus(enum.StrEnum):
    """Moderation state.  Only ``approved`` events are public."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RsvpStatus(enum.StrEnum):
    GOING = "going"
    INTERESTED = "interested"
    NOT_GOING = "not_going"


class AuditAction(enum.StrEnum):
    CREATE = "create"
    UPDATE = "update"
    SOFT_DELETE = "soft_delete"
    RESTORE = "restore"
    PERMANENT_DELETE = "permanent_delete"
    APPROVE = "approve"
    REJECT = "reject"


class SessionType(enum.StrEnum):
    STANDARD = "campus-standard"
    EXTENDED = "campus-extended"


class TokenPurpose(enum.StrEnum):
    CONFIRM = "confirm"
    RESET = "reset"


# ---------------------------------------------------------------------------
# Clubs
# ---------------------------------------------------------------------------
class Club(Base):
    __tablename__ = "clubs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    events: Mapped[list[Event]] = relationship(back_populates="club")

    def __repr__(self) -> str:
        return f"<Club id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(100), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), default=None)
    last_name: Mapped[str | None] = mapped_column(String(100), default=None)
    full_name: Mapped[str | None] = mapped_column(String(200), default=None)
    avatar_path: Mapped[str | None] = mapped_column(String(500), default=None)
    user_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserType.STUDENT.value
    )
    club_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clubs.id", ondelete="SET NULL"), nullable=True
    )
    email_confirmed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(),
        onupdate=utcnow,
    )

    rsvps: Mapped[list[Rsvp]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    sessions: Mapped[list[AuthSession]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} type={self.user_type}>"


class ClubAdmin(Base):
    __tablename__ = "club_admins"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    club_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clubs.id", ondelete="CASCADE"), primary_key=True
    )
    granted_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<ClubAdmin user={self.user_id} club={self.club_id}>"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
class Event(Base):
    """A campus event.

    ``date`` / ``start_time`` / ``end_time`` are kept as the wall-clock
    strings the forms submit (``YYYY-MM-DD`` and ``HH:MM[:SS]``); the
    schedule helpers compare them as local, timezone-naive values.
    """
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    original_text: Mapped[str | None] = mapped_column(Text, default=None)
    date: Mapped[str | None] = mapped_column(String(10), default=None)
    start_time: Mapped[str | None] = mapped_column(String(8), default=None)
    end_time: Mapped[str | None] = mapped_column(String(8), default=None)
    location: Mapped[str | None] = mapped_column(String(300), default=None)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    audience: Mapped[str | None] = mapped_column(String(100), default=None)
    post_url: Mapped[str | None] = mapped_column(String(500), default=None)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EventStatus.PENDING.value
    )
    club_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clubs.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(),
        onupdate=utcnow,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )
    permanently_deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    club: Mapped[Club | None] = relationship(back_populates="events")
    rsvps: Mapped[list[Rsvp]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )
    vibe_checks: Mapped[list[VibeCheck]] = relationship(
        back_populates="event", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_events_status_date", "status", "date"),
        Index("ix_events_deleted_at", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} title={self.title!r} status={self.status}>"


# ---------------------------------------------------------------------------
# RSVPs
# ---------------------------------------------------------------------------
class Rsvp(Base):
    __tablename__ = "rsvps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RsvpStatus.GOING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(),
        onupdate=utcnow,
    )

    event: Mapped[Event] = relationship(back_populates="rsvps")
    user: Mapped[User] = relationship(back_populates="rsvps")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_rsvps_event_user"),
        Index("ix_rsvps_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Rsvp event={self.event_id} user={self.user_id} status={self.status}>"


# ---------------------------------------------------------------------------
# Vibe checks
# ---------------------------------------------------------------------------
class VibeCheck(Base):
    __tablename__ = "vibe_checks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    user_name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    vibe_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    vibe_emoji: Mapped[str] = mapped_column(String(10), nullable=False)
    comment: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    event: Mapped[Event] = relationship(back_populates="vibe_checks")

    __table_args__ = (
        Index("ix_vibe_checks_event_time", "event_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<VibeCheck id={self.id} event={self.event_id} rating={self.vibe_rating}>"


# ---------------------------------------------------------------------------
# EventAuditLog: append-only audit trail
# ---------------------------------------------------------------------------
class EventAuditLog(Base):
    __tablename__ = "event_audit_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(36), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_event_audit_event_time", "event_id", "timestamp"),
        Index("ix_event_audit_actor_time", "actor_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<EventAuditLog id={self.id} event={self.event_id} action={self.action}>"


# ---------------------------------------------------------------------------
# AuthSession: server-side half of every issued JWT
# ---------------------------------------------------------------------------
class AuthSession(Base):
    __tablename__ = "auth_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    session_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=SessionType.STANDARD.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    user: Mapped[User] = relationship(back_populates="sessions")

    __table_args__ = (
        Index("ix_auth_sessions_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<AuthSession id={self.id[:8]!r}... user={self.user_id}>"


# ---------------------------------------------------------------------------
# AuthToken: one-time confirmation / reset tokens
# ---------------------------------------------------------------------------
class AuthToken(Base):
    __tablename__ = "auth_tokens"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    purpose: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    def __repr__(self) -> str:
        return f"<AuthToken token={self.token[:8]!r}... purpose={self.purpose}>"


# ---------------------------------------------------------------------------
# RateLimitEvent: durable sliding-window state
# ---------------------------------------------------------------------------
class RateLimitEvent(Base):
    __tablename__ = "rate_limit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bucket: Mapped[str] = mapped_column(String(50), nullable=False)
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_rate_limit_bucket_key_ts", "bucket", "key", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<RateLimitEvent bucket={self.bucket!r} key={self.key!r} ts={self.timestamp}>"
