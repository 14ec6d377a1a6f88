"""
gophergather.services.rsvp_service — RSVPs
===========================================

One RSVP row per (event, user); setting a new status overwrites the old one.
Only public events that haven't ended accept RSVPs.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from gophergather.constants import RSVP_STATUSES
from gophergather.database.models import Event, Rsvp, RsvpStatus, User
from gophergather.engine import schedule
from gophergather.errors import InvalidInput, NotEligible, NotFound
from gophergather.services.event_service import is_public

logger = logging.getLogger(__name__)


def set_rsvp(
    engine,
    user: User,
    event_id: str,
    status: str = RsvpStatus.GOING.value,
    *,
    now: datetime | None = None,
    duration_hours: int = schedule.DEFAULT_DURATION_HOURS,
) -> Rsvp:
    """Create or update the caller's RSVP.

    Raises
    ------
    InvalidInput
        Unknown status.
    NotFound
        The event doesn't exist or isn't public.
    NotEligible
        The event has already ended.
    """
    if status not in RSVP_STATUSES:
        raise InvalidInput(f"RSVP status must be one of: {', '.join(RSVP_STATUSES)}")
    now = now or datetime.now()

    with Session(engine, expire_on_commit=False) as session:
        event = session.get(Event, event_id)
        if event is None or not is_public(event):
            raise NotFound("Event not found")
        if schedule.is_past(event, now, duration_hours=duration_hours):
            raise NotEligible("This event has already ended")

        rsvp = session.scalar(
            select(Rsvp).where(Rsvp.event_id == event_id, Rsvp.user_id == user.id)
        )
        if rsvp is None:
            rsvp = Rsvp(event_id=event_id, user_id=user.id, status=status)
            session.add(rsvp)
        else:
            rsvp.status = status
        session.commit()

    logger.info("RSVP %s → %s for event %s", user.email, status, event_id)
    return rsvp


def clear_rsvp(engine, user: User, event_id: str) -> bool:
    """Remove the caller's RSVP.  Returns False if there was none."""
    with Session(engine) as session:
        result = session.execute(
            delete(Rsvp).where(Rsvp.event_id == event_id, Rsvp.user_id == user.id)
        )
        session.commit()
    return bool(result.rowcount)


def my_rsvp(engine, user: User | None, event_id: str) -> str | None:
    if user is None:
        return None
    with Session(engine) as session:
        return session.scalar(
            select(Rsvp.status).where(Rsvp.event_id == event_id, Rsvp.user_id == user.id)
        )


def going_count(engine, event_id: str) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.count(Rsvp.id)).where(
                Rsvp.event_id == event_id,
                Rsvp.status == RsvpStatus.GOING.value,
            )
        ) or 0


def rsvp_counts(engine, event_id: str) -> dict[str, int]:
    """``{status: count}`` for every RSVP status, zeros included."""
    counts = {status: 0 for status in RSVP_STATUSES}
    with Session(engine) as session:
        rows = session.execute(
            select(Rsvp.status, func.count(Rsvp.id))
            .where(Rsvp.event_id == event_id)
            .group_by(Rsvp.status)
        ).all()
    for status, count in rows:
        counts[status] = count
    return counts
