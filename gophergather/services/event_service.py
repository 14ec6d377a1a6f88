"""
gophergather.services.event_service — Event Lifecycle
======================================================

Listing, creation, moderation, editing and soft deletion of events.

Every mutation follows the same pattern:
  1. Open a session
  2. Check the actor may touch this event
  3. Read a "before" snapshot
  4. Apply the change
  5. Append an ``event_audit_logs`` row with before/after snapshots
  6. Commit

Soft delete sets ``deleted_at``; the row disappears from public listings
but can be restored.  Once the grace period (30 days by default) has
passed, an admin may purge it, which stamps ``permanently_deleted_at``.
Purged rows are kept for the audit trail and never shown again.
"""

from __future__ import annotations

import logging
import re
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from gophergather.constants import (
    AUDIENCE_DEFAULT,
    AUDIENCE_OPTIONS,
    EVENT_CATEGORIES,
    EVENT_MANAGER_TYPES,
    LOCATION_TBA,
)
from gophergather.database.models import (
    AuditAction,
    Club,
    Event,
    EventAuditLog,
    EventStatus,
    User,
    UserType,
)
from gophergather.engine import schedule
from gophergather.engine.text import description_preview, sanitize_input
from gophergather.errors import Forbidden, InvalidInput, NotEligible, NotFound

logger = logging.getLogger(__name__)

DEFAULT_GRACE_DAYS = 30
DEFAULT_PAST_PAGE_SIZE = 6

EDITABLE_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "original_text",
    "date",
    "start_time",
    "end_time",
    "location",
    "category",
    "audience",
    "post_url",
    "image_url",
)
_SANITIZED_FIELDS = frozenset({"title", "description", "original_text", "location"})
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ---------------------------------------------------------------------------
# Audit helpers
# ---------------------------------------------------------------------------
def _row_to_dict(obj: Any) -> dict | None:
    """Convert a model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, datetime):
            val = val.isoformat()
        result[col.name] = val
    return result


def _log_event_action(
    session: Session,
    *,
    event_id: str,
    actor_id: str | None,
    action: AuditAction,
    before: dict | None,
    after: dict | None,
) -> None:
    """Insert an ``event_audit_logs`` row within the current transaction."""
    session.add(EventAuditLog(
        event_id=event_id,
        actor_id=actor_id,
        action=action.value,
        before_snapshot=before,
        after_snapshot=after,
    ))


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
def is_event_manager(user: User | None) -> bool:
    return user is not None and user.user_type in EVENT_MANAGER_TYPES


def can_manage_event(user: User | None, event: Event) -> bool:
    """Admins manage every event; club admins only their own club's."""
    if user is None:
        return False
    if user.user_type == UserType.ADMIN:
        return True
    return (
        user.user_type == UserType.CLUB_ADMIN
        and user.club_id is not None
        and user.club_id == event.club_id
    )


def _require_manager(user: User | None) -> None:
    if not is_event_manager(user):
        raise Forbidden("Not authorized")


def _load_manageable(session: Session, actor: User, event_id: str) -> Event:
    event = session.get(Event, event_id)
    if event is None or event.permanently_deleted_at is not None:
        raise NotFound("Event not found")
    if not can_manage_event(actor, event):
        raise Forbidden("Not authorized")
    return event


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def clean_event_fields(data: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """Validate and normalise submitted event fields.

    With ``partial=False`` the title, date and category are required.
    Unknown keys are ignored.
    """
    cleaned: dict[str, Any] = {}
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, str):
            value = value.strip()
            if key in _SANITIZED_FIELDS:
                value = sanitize_input(value).strip()
        cleaned[key] = value or None

    if not partial:
        for key, label in (("title", "Title"), ("date", "Date"), ("category", "Category")):
            if not cleaned.get(key):
                raise InvalidInput(f"{label} is required.")
    elif "title" in cleaned and not cleaned["title"]:
        raise InvalidInput("Title is required.")

    if cleaned.get("date"):
        # fromisoformat alone also takes "20260105" and "2026-W02-1"
        if not _DATE_RE.match(cleaned["date"]):
            raise InvalidInput("Date must be in YYYY-MM-DD format.")
        try:
            date.fromisoformat(cleaned["date"])
        except ValueError:
            raise InvalidInput(f"Invalid date: {cleaned['date']!r}") from None

    for key, label in (("start_time", "start time"), ("end_time", "end time")):
        if cleaned.get(key):
            parsed = schedule.to_24h(cleaned[key])
            if parsed is None:
                raise InvalidInput(f"Invalid {label}: {cleaned[key]!r}")
            cleaned[key] = parsed

    if not partial and cleaned.get("end_time") and not cleaned.get("start_time"):
        raise InvalidInput("An end time needs a start time.")

    if "category" in cleaned and cleaned["category"] not in EVENT_CATEGORIES:
        raise InvalidInput(
            f"Category must be one of: {', '.join(EVENT_CATEGORIES)}"
        )

    if cleaned.get("audience") and cleaned["audience"] not in AUDIENCE_OPTIONS:
        raise InvalidInput(
            f"Audience must be one of: {', '.join(AUDIENCE_OPTIONS)}"
        )

    if cleaned.get("post_url") and not cleaned["post_url"].startswith(("http://", "https://")):
        raise InvalidInput("Link must start with http:// or https://")

    return cleaned


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def event_to_dict(
    event: Event,
    now: datetime | None = None,
    *,
    duration_hours: int = schedule.DEFAULT_DURATION_HOURS,
) -> dict[str, Any]:
    """Public JSON shape of an event, with display strings pre-computed.

    Text fields were sanitized when written and are returned as stored.
    """
    data = _row_to_dict(event)
    data["timing"] = schedule.event_status(event, now, duration_hours=duration_hours)
    data["display_date"] = schedule.format_date(event.date)
    data["display_time"] = schedule.display_time_range(event.start_time, event.end_time)
    data["display_location"] = data["location"] or LOCATION_TBA
    data["display_audience"] = event.audience or AUDIENCE_DEFAULT
    data["preview"] = description_preview(data["original_text"] or data["description"])
    return data


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------
def _public_events_query():
    return (
        select(Event)
        .where(
            Event.status == EventStatus.APPROVED.value,
            Event.deleted_at.is_(None),
            Event.permanently_deleted_at.is_(None),
        )
        .order_by(Event.date.asc(), Event.start_time.asc())
    )


def list_public_events(
    engine,
    category: str | None = None,
    *,
    past_limit: int = DEFAULT_PAST_PAGE_SIZE,
    now: datetime | None = None,
    duration_hours: int = schedule.DEFAULT_DURATION_HOURS,
) -> dict[str, Any]:
    """Approved, live events split into current / upcoming / past.

    Past events are newest-first and truncated to *past_limit*; the client
    asks again with a larger limit to "load more".
    """
    now = now or datetime.now()
    with Session(engine) as session:
        events = session.scalars(_public_events_query()).all()

        filtered = schedule.filter_by_category(events, category)
        buckets = schedule.categorize_events(filtered, now, duration_hours=duration_hours)

        def dump(rows):
            return [event_to_dict(ev, now, duration_hours=duration_hours) for ev in rows]

        return {
            "category": category or "All Events",
            "total": len(filtered),
            "current": dump(buckets.current),
            "upcoming": dump(buckets.upcoming),
            "past": dump(buckets.past[:max(0, past_limit)]),
            "past_total": len(buckets.past),
            "has_more_past": len(buckets.past) > past_limit,
        }


def is_public(event: Event) -> bool:
    return (
        event.status == EventStatus.APPROVED
        and event.deleted_at is None
        and event.permanently_deleted_at is None
    )


def get_event(engine, event_id: str, viewer: User | None = None) -> Event:
    """Fetch one event.

    Non-public events (pending, rejected, soft-deleted) are visible only to
    those who can manage them and to the student who submitted them.
    """
    with Session(engine, expire_on_commit=False) as session:
        event = session.get(Event, event_id)
        if event is None or event.permanently_deleted_at is not None:
            raise NotFound("Event not found")
        if not is_public(event):
            owner = viewer is not None and viewer.id == event.created_by
            if not (owner or can_manage_event(viewer, event)):
                raise NotFound("Event not found")
        session.expunge(event)
        return event


def list_pending_events(engine, actor: User) -> list[Event]:
    """Moderation queue: pending events the actor may approve."""
    _require_manager(actor)
    with Session(engine, expire_on_commit=False) as session:
        query = (
            select(Event)
            .where(
                Event.status == EventStatus.PENDING.value,
                Event.deleted_at.is_(None),
                Event.permanently_deleted_at.is_(None),
            )
            .order_by(Event.created_at.asc())
        )
        if actor.user_type != UserType.ADMIN:
            query = query.where(Event.club_id == actor.club_id)
        rows = session.scalars(query).all()
        session.expunge_all()
        return list(rows)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------
def _insert_event(session: Session, actor: User, fields: dict, status: EventStatus) -> Event:
    event = Event(**fields, status=status.value, created_by=actor.id)
    session.add(event)
    session.flush()
    _log_event_action(
        session,
        event_id=event.id,
        actor_id=actor.id,
        action=AuditAction.CREATE,
        before=None,
        after=_row_to_dict(event),
    )
    return event


def create_event(engine, actor: User, data: dict[str, Any]) -> Event:
    """Publish an event directly (admins and club admins only).

    Club admins always post for their own club; admins must name one.
    """
    _require_manager(actor)
    fields = clean_event_fields(data)

    if actor.user_type == UserType.CLUB_ADMIN:
        club_id = actor.club_id
        if not club_id:
            raise InvalidInput("Your account is not linked to an organization.")
    else:
        club_id = data.get("club_id")
        if not club_id:
            raise InvalidInput("Please select an organization.")

    with Session(engine, expire_on_commit=False) as session:
        if session.get(Club, club_id) is None:
            raise NotFound("Organization not found")
        event = _insert_event(
            session, actor, {**fields, "club_id": club_id}, EventStatus.APPROVED
        )
        session.commit()

    logger.info("Event %s created by %s (%s)", event.id, actor.email, actor.user_type)
    return event


def submit_event(engine, actor: User, data: dict[str, Any]) -> Event:
    """Student submission; the event waits in ``pending`` for moderation."""
    fields = clean_event_fields(data)
    club_id = data.get("club_id") or None

    with Session(engine, expire_on_commit=False) as session:
        if club_id and session.get(Club, club_id) is None:
            raise NotFound("Organization not found")
        event = _insert_event(
            session, actor, {**fields, "club_id": club_id}, EventStatus.PENDING
        )
        session.commit()

    logger.info("Event %s submitted for review by %s", event.id, actor.email)
    return event


# ---------------------------------------------------------------------------
# Moderation & edits
# ---------------------------------------------------------------------------
def moderate_event(engine, actor: User, event_id: str, decision: str) -> Event:
    """Approve or reject a pending event."""
    if decision not in ("approve", "reject"):
        raise InvalidInput("Decision must be 'approve' or 'reject'.")
    _require_manager(actor)

    with Session(engine, expire_on_commit=False) as session:
        event = session.get(Event, event_id)
        if event is None or event.permanently_deleted_at is not None:
            raise NotFound("Event not found")
        # Unassigned submissions can only be moderated by admins
        if not can_manage_event(actor, event):
            raise Forbidden("Not authorized")
        if event.status != EventStatus.PENDING:
            raise NotEligible(f"Event is already {event.status}")

        before = _row_to_dict(event)
        if decision == "approve":
            event.status = EventStatus.APPROVED.value
            action = AuditAction.APPROVE
        else:
            event.status = EventStatus.REJECTED.value
            action = AuditAction.REJECT
        session.flush()
        _log_event_action(
            session,
            event_id=event.id,
            actor_id=actor.id,
            action=action,
            before=before,
            after=_row_to_dict(event),
        )
        session.commit()

    logger.info("Event %s %sd by %s", event_id, decision, actor.email)
    return event


def update_event(engine, actor: User, event_id: str, changes: dict[str, Any]) -> Event:
    """Edit an event's details.  Only the fields present in *changes* move."""
    fields = clean_event_fields(changes, partial=True)

    with Session(engine, expire_on_commit=False) as session:
        event = _load_manageable(session, actor, event_id)
        before = _row_to_dict(event)
        for key, value in fields.items():
            setattr(event, key, value)
        if event.end_time and not event.start_time:
            raise InvalidInput("An end time needs a start time.")
        session.flush()
        _log_event_action(
            session,
            event_id=event.id,
            actor_id=actor.id,
            action=AuditAction.UPDATE,
            before=before,
            after=_row_to_dict(event),
        )
        session.commit()

    logger.info("Event %s updated by %s: %s", event_id, actor.email, sorted(fields))
    return event


# ---------------------------------------------------------------------------
# Soft delete / restore / purge
# ---------------------------------------------------------------------------
def soft_delete_event(
    engine, actor: User, event_id: str, now: datetime | None = None
) -> Event:
    now = now or datetime.now(UTC)
    with Session(engine, expire_on_commit=False) as session:
        event = _load_manageable(session, actor, event_id)
        if event.deleted_at is not None:
            raise NotEligible("Event is already deleted")
        before = _row_to_dict(event)
        event.deleted_at = now
        session.flush()
        _log_event_action(
            session,
            event_id=event.id,
            actor_id=actor.id,
            action=AuditAction.SOFT_DELETE,
            before=before,
            after=_row_to_dict(event),
        )
        session.commit()

    logger.info("Event %s soft-deleted by %s", event_id, actor.email)
    return event


def restore_event(engine, actor: User, event_id: str) -> Event:
    with Session(engine, expire_on_commit=False) as session:
        event = _load_manageable(session, actor, event_id)
        if event.deleted_at is None:
            raise NotEligible("Event is not deleted")
        before = _row_to_dict(event)
        event.deleted_at = None
        session.flush()
        _log_event_action(
            session,
            event_id=event.id,
            actor_id=actor.id,
            action=AuditAction.RESTORE,
            before=before,
            after=_row_to_dict(event),
        )
        session.commit()

    logger.info("Event %s restored by %s", event_id, actor.email)
    return event


def list_deleted_events(
    engine,
    actor: User,
    now: datetime | None = None,
    *,
    grace_days: int = DEFAULT_GRACE_DAYS,
) -> list[dict[str, Any]]:
    """Soft-deleted (not purged) events with their purge countdown.

    Admins see every club; club admins see their own club's.
    """
    _require_manager(actor)
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        query = (
            select(Event)
            .where(
                Event.deleted_at.is_not(None),
                Event.permanently_deleted_at.is_(None),
            )
            .order_by(Event.deleted_at.desc())
        )
        if actor.user_type != UserType.ADMIN:
            query = query.where(Event.club_id == actor.club_id)

        rows = []
        for event in session.scalars(query):
            since = schedule.days_since(event.deleted_at, now)
            left = grace_days - since
            rows.append({
                "id": event.id,
                "title": event.title,
                "date": event.date,
                "category": event.category,
                "club_id": event.club_id,
                "deleted_at": schedule.as_utc(event.deleted_at).isoformat(),
                "days_since_deleted": since,
                "days_left": left,
                "can_purge": left <= 0,
            })
        return rows


def permanently_delete_event(
    engine,
    actor: User,
    event_id: str,
    now: datetime | None = None,
    *,
    grace_days: int = DEFAULT_GRACE_DAYS,
) -> Event:
    """Purge a soft-deleted event once its grace period is over."""
    now = now or datetime.now(UTC)
    with Session(engine, expire_on_commit=False) as session:
        event = _load_manageable(session, actor, event_id)
        if event.deleted_at is None:
            raise NotEligible("Only deleted events can be permanently deleted")
        left = schedule.days_until_purge(event.deleted_at, now, grace_days)
        if left > 0:
            raise NotEligible(
                f"Can only delete after {grace_days} days ({left} days left)"
            )
        before = _row_to_dict(event)
        event.permanently_deleted_at = now
        session.flush()
        _log_event_action(
            session,
            event_id=event.id,
            actor_id=actor.id,
            action=AuditAction.PERMANENT_DELETE,
            before=before,
            after=_row_to_dict(event),
        )
        session.commit()

    logger.info("Event %s permanently deleted by %s", event_id, actor.email)
    return event


def audit_trail(engine, event_id: str) -> list[EventAuditLog]:
    with Session(engine, expire_on_commit=False) as session:
        rows = session.scalars(
            select(EventAuditLog)
            .where(EventAuditLog.event_id == event_id)
            .order_by(EventAuditLog.timestamp.asc(), EventAuditLog.id.asc())
        ).all()
        session.expunge_all()
        return list(rows)
