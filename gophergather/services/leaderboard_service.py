"""
gophergather.services.leaderboard_service — Community Leaderboard
==================================================================

Campus-wide totals plus three ranked boards:

* Top event goers — most ``going`` RSVPs.
* Trending events — most RSVPs on live, approved events.
* Popular categories — live, approved events per category, with a bar
  percentage relative to the busiest category.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gophergather.constants import LEADERBOARD_LIMIT, RANK_TITLES
from gophergather.database.models import Event, EventStatus, Rsvp, RsvpStatus, User, UserType
from gophergather.engine import schedule
from gophergather.engine.text import display_name, initials
from gophergather.services.upload_service import public_url

logger = logging.getLogger(__name__)


def _live_event_filter():
    return (
        Event.status == EventStatus.APPROVED.value,
        Event.deleted_at.is_(None),
        Event.permanently_deleted_at.is_(None),
    )


def _going_counts():
    return (
        select(Rsvp.event_id, func.count(Rsvp.id).label("going_count"))
        .where(Rsvp.status == RsvpStatus.GOING.value)
        .group_by(Rsvp.event_id)
        .subquery()
    )


def rank_title(index: int) -> str | None:
    """Champion / Runner-up / 3rd Place for the first three rows."""
    return RANK_TITLES[index] if index < len(RANK_TITLES) else None


def category_percentages(counts: list[tuple[str, int]], limit: int = LEADERBOARD_LIMIT) -> list[dict]:
    """Attach ``round(count / max * 100)`` to each (category, count) pair."""
    cleaned = [(cat, int(n or 0)) for cat, n in counts if cat]
    top = max([1, *(n for _, n in cleaned)])
    return [
        {
            "category": cat,
            "count": n,
            "percentage": math.floor(n / top * 100 + 0.5),
        }
        for cat, n in cleaned[:limit]
    ]


def events_this_week(session: Session, now: datetime | None = None) -> list[dict[str, Any]]:
    start, end = schedule.week_range(now)
    going = _going_counts()
    rows = session.execute(
        select(Event.id, Event.title, Event.date, func.coalesce(going.c.going_count, 0))
        .outerjoin(going, going.c.event_id == Event.id)
        .where(
            *_live_event_filter(),
            Event.date >= start.date().isoformat(),
            Event.date < end.date().isoformat(),
        )
        .order_by(Event.date.asc())
    ).all()
    return [
        {"id": eid, "title": title, "date": date, "going_count": int(n)}
        for eid, title, date, n in rows
    ]


def top_event_goers(session: Session, limit: int = LEADERBOARD_LIMIT) -> list[dict[str, Any]]:
    going_count = func.count(Rsvp.id).label("going_count")
    rows = session.execute(
        select(User, going_count)
        .join(Rsvp, Rsvp.user_id == User.id)
        .where(Rsvp.status == RsvpStatus.GOING.value)
        .group_by(User.id)
        .order_by(going_count.desc(), User.email.asc())
        .limit(limit)
    ).all()
    return [
        {
            "rank": index + 1,
            "rank_title": rank_title(index),
            "user_id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "display_name": display_name(user.first_name, user.last_name, user.email),
            "initials": initials(user.first_name, user.last_name, user.email),
            "avatar_url": public_url(user.avatar_path),
            "going_count": int(n),
        }
        for index, (user, n) in enumerate(rows)
    ]


def trending_events(session: Session, limit: int = LEADERBOARD_LIMIT) -> list[dict[str, Any]]:
    rsvp_count = func.count(Rsvp.id).label("rsvp_count")
    rows = session.execute(
        select(Event.id, Event.title, Event.date, Event.category, rsvp_count)
        .join(Rsvp, Rsvp.event_id == Event.id)
        .where(*_live_event_filter())
        .group_by(Event.id, Event.title, Event.date, Event.category)
        .order_by(rsvp_count.desc(), Event.date.asc())
        .limit(limit)
    ).all()
    return [
        {
            "rank": index + 1,
            "rank_title": rank_title(index),
            "id": eid,
            "title": title,
            "date": date,
            "category": category,
            "rsvp_count": int(n),
        }
        for index, (eid, title, date, category, n) in enumerate(rows)
    ]


def popular_categories(session: Session, limit: int = LEADERBOARD_LIMIT) -> list[dict[str, Any]]:
    cnt = func.count(Event.id).label("cnt")
    rows = session.execute(
        select(Event.category, cnt)
        .where(*_live_event_filter())
        .group_by(Event.category)
        .order_by(cnt.desc(), Event.category.asc())
    ).all()
    return category_percentages([(cat, n) for cat, n in rows], limit)


def leaderboard(engine, now: datetime | None = None) -> dict[str, Any]:
    """Everything the leaderboard page shows, in one round trip."""
    with Session(engine) as session:
        total_students = session.scalar(
            select(func.count(User.id)).where(User.user_type == UserType.STUDENT.value)
        ) or 0
        total_events = session.scalar(select(func.count(Event.id))) or 0
        total_rsvps = session.scalar(select(func.count(Rsvp.id))) or 0
        week = events_this_week(session, now)

        return {
            "total_students": total_students,
            "total_events": total_events,
            "total_rsvps": total_rsvps,
            "events_this_week": week,
            "events_this_week_count": len(week),
            "top_goers": top_event_goers(session),
            "trending_events": trending_events(session),
            "popular_categories": popular_categories(session),
        }
