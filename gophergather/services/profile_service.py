"""
gophergather.services.profile_service — Profiles & Activity Overview
=====================================================================
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gophergather.constants import (
    ACHIEVEMENT_THRESHOLDS,
    POINTS_PER_ATTENDED_EVENT,
    POINTS_PER_PHOTO,
    POINTS_PER_VIBE_CHECK,
)
from gophergather.database.models import Event, Rsvp, RsvpStatus, User, VibeCheck
from gophergather.engine import schedule
from gophergather.engine.text import display_name, initials, sanitize_input
from gophergather.errors import InvalidInput, NotFound
from gophergather.services.event_service import is_public
from gophergather.services.upload_service import public_url

logger = logging.getLogger(__name__)

_NAME_MAX = 100


def profile_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "display_name": display_name(user.first_name, user.last_name, user.email, user.full_name),
        "initials": initials(user.first_name, user.last_name, user.email),
        "avatar_url": public_url(user.avatar_path),
        "user_type": user.user_type,
        "club_id": user.club_id,
        "email_confirmed": user.email_confirmed,
    }


def get_profile(engine, user_id: str) -> User:
    with Session(engine, expire_on_commit=False) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        session.expunge(user)
        return user


def _clean_name(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = sanitize_input(value).strip()
    if len(cleaned) > _NAME_MAX:
        raise InvalidInput(f"Names are limited to {_NAME_MAX} characters.")
    return cleaned or None


def update_profile(
    engine,
    user: User,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    full_name: str | None = None,
) -> User:
    """Update name fields.  ``None`` leaves a field unchanged.

    When first/last change and no explicit full name is given, the full
    name is rebuilt from them.
    """
    with Session(engine, expire_on_commit=False) as session:
        row = session.get(User, user.id)
        if row is None:
            raise NotFound("User not found")
        if first_name is not None:
            row.first_name = _clean_name(first_name)
        if last_name is not None:
            row.last_name = _clean_name(last_name)
        if full_name is not None:
            row.full_name = _clean_name(full_name)
        elif first_name is not None or last_name is not None:
            joined = " ".join(p for p in (row.first_name, row.last_name) if p)
            row.full_name = joined or None
        session.commit()

    logger.info("Profile updated for %s", row.email)
    return row


def set_avatar(engine, user: User, url_path: str) -> tuple[User, str | None]:
    """Point the user's avatar at *url_path*.  Returns (user, previous path)."""
    with Session(engine, expire_on_commit=False) as session:
        row = session.get(User, user.id)
        if row is None:
            raise NotFound("User not found")
        previous = row.avatar_path
        row.avatar_path = url_path
        session.commit()
    return row, previous


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------
def compute_points(events_attended: int, vibe_checks: int, photos_shared: int) -> int:
    return (
        events_attended * POINTS_PER_ATTENDED_EVENT
        + vibe_checks * POINTS_PER_VIBE_CHECK
        + photos_shared * POINTS_PER_PHOTO
    )


def earned_achievements(stats: dict[str, int]) -> list[str]:
    return [
        label
        for label, key, threshold in ACHIEVEMENT_THRESHOLDS
        if stats.get(key, 0) >= threshold
    ]


def profile_overview(
    engine,
    user: User,
    now: datetime | None = None,
    *,
    duration_hours: int = schedule.DEFAULT_DURATION_HOURS,
) -> dict[str, Any]:
    """Points, counters and achievements for the profile page.

    *now* is local wall-clock time, like event dates.
    """
    now = now or datetime.now()
    with Session(engine) as session:
        rsvp_rows = session.execute(
            select(Rsvp.status, Event)
            .join(Event, Event.id == Rsvp.event_id)
            .where(Rsvp.user_id == user.id)
        ).all()

        attended: list[Event] = []
        active = 0
        for status, event in rsvp_rows:
            if not is_public(event):
                continue
            past = schedule.is_past(event, now, duration_hours=duration_hours)
            if status == RsvpStatus.GOING and past:
                attended.append(event)
            elif not past and status in (RsvpStatus.GOING, RsvpStatus.INTERESTED):
                active += 1

        vibe_checks = session.scalar(
            select(func.count(VibeCheck.id)).where(VibeCheck.user_id == user.id)
        ) or 0
        photos_shared = session.scalar(
            select(func.count(Event.id)).where(
                Event.created_by == user.id,
                Event.image_url.is_not(None),
                Event.permanently_deleted_at.is_(None),
            )
        ) or 0

        start, end = schedule.week_range(now)
        this_week = session.scalar(
            select(func.count(Rsvp.id)).where(
                Rsvp.user_id == user.id,
                Rsvp.status == RsvpStatus.GOING.value,
                Rsvp.created_at >= start.astimezone(UTC),
                Rsvp.created_at < end.astimezone(UTC),
            )
        ) or 0

    stats = {
        "events_attended": len(attended),
        "vibe_checks": vibe_checks,
        "photos_shared": photos_shared,
    }
    achievements = earned_achievements(stats)
    favorites = Counter(ev.category for ev in attended).most_common(3)

    return {
        "points": compute_points(**stats),
        "events_attended": stats["events_attended"],
        "active_rsvps": active,
        "photos_shared": photos_shared,
        "achievements": len(achievements),
        "achievement_names": achievements,
        "campus_impact": {"vibe_checks": vibe_checks},
        "favorite_categories": [{"category": c, "count": n} for c, n in favorites],
        "events_attended_this_week": this_week,
    }
