"""
gophergather.services.vibe_service — Vibe Checks
=================================================

Emoji-rated reactions to an event, with an optional short comment.

Ratings map to :data:`gophergather.constants.VIBE_OPTIONS`
(1 Boring 😩 … 5 Lit 🔥).  Every check counts toward the stats; only checks
with a non-blank comment are listed as comments.  "Deleting" a comment
nulls it and keeps the rating.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from gophergather.constants import (
    DEFAULT_VIBE_EMOJI,
    EVENT_MANAGER_TYPES,
    MAX_VIBE_COMMENT_LENGTH,
    VIBE_BY_VALUE,
    VIBE_OPTIONS,
)
from gophergather.database.models import Event, User, VibeCheck
from gophergather.engine.text import email_local_part, sanitize_input
from gophergather.errors import Forbidden, InvalidInput, NotFound
from gophergather.services.event_service import is_public

logger = logging.getLogger(__name__)


def vibe_user_name(user: User) -> str:
    """Full name, else the e-mail local part, first letter capitalized."""
    base = user.full_name if user.full_name and user.full_name.strip() else email_local_part(user.email)
    base = base.strip()
    return base[:1].upper() + base[1:]


def submit_vibe_check(
    engine,
    user: User,
    event_id: str,
    rating: int,
    comment: str | None = None,
) -> VibeCheck:
    if rating not in VIBE_BY_VALUE:
        raise InvalidInput("Pick a vibe between 1 and 5.")
    text = sanitize_input(comment).strip()
    if len(text) > MAX_VIBE_COMMENT_LENGTH:
        raise InvalidInput(
            f"Comments are limited to {MAX_VIBE_COMMENT_LENGTH} characters."
        )

    with Session(engine, expire_on_commit=False) as session:
        event = session.get(Event, event_id)
        if event is None or not is_public(event):
            raise NotFound("Event not found")
        check = VibeCheck(
            event_id=event_id,
            user_id=user.id,
            user_name=vibe_user_name(user),
            user_email=user.email,
            vibe_rating=rating,
            vibe_emoji=VIBE_BY_VALUE[rating].emoji or DEFAULT_VIBE_EMOJI,
            comment=text or None,
        )
        session.add(check)
        session.commit()

    logger.info("Vibe check %d/5 on event %s by %s", rating, event_id, user.email)
    return check


def list_vibe_checks(engine, event_id: str) -> list[VibeCheck]:
    """All checks for an event, newest first."""
    with Session(engine, expire_on_commit=False) as session:
        rows = session.scalars(
            select(VibeCheck)
            .where(VibeCheck.event_id == event_id)
            .order_by(VibeCheck.created_at.desc(), VibeCheck.id.desc())
        ).all()
        session.expunge_all()
        return list(rows)


def vibe_stats(checks: Sequence[VibeCheck]) -> dict[str, Any]:
    """Average (1 decimal, half-up), total and per-option distribution.

    The distribution lists the highest rating first.
    """
    total = len(checks)
    average = None
    if total:
        mean = sum(c.vibe_rating or 0 for c in checks) / total
        average = math.floor(mean * 10 + 0.5) / 10

    distribution = []
    for opt in sorted(VIBE_OPTIONS, key=lambda o: o.value, reverse=True):
        count = sum(1 for c in checks if c.vibe_rating == opt.value)
        distribution.append({
            "value": opt.value,
            "label": opt.label,
            "emoji": opt.emoji,
            "count": count,
            "percentage": (count / total * 100) if total else 0,
        })
    return {"average": average, "total": total, "distribution": distribution}


def visible_comments(checks: Sequence[VibeCheck]) -> list[VibeCheck]:
    return [c for c in checks if c.comment and c.comment.strip()]


def delete_vibe_comment(engine, user: User, check_id: int) -> VibeCheck:
    """Null out a comment.  Authors may remove their own; event managers any."""
    with Session(engine, expire_on_commit=False) as session:
        check = session.get(VibeCheck, check_id)
        if check is None:
            raise NotFound("Vibe check not found")
        moderator = user.user_type in EVENT_MANAGER_TYPES
        owner = check.user_id == user.id or (
            check.user_email is not None and check.user_email == user.email
        )
        if not (owner or moderator):
            raise Forbidden("You can only delete your own comments")
        check.comment = None
        session.commit()

    logger.info("Vibe comment %d removed by %s%s", check_id, user.email,
                " (moderator)" if moderator and not owner else "")
    return check


def vibe_check_to_dict(check: VibeCheck) -> dict[str, Any]:
    return {
        "id": check.id,
        "event_id": check.event_id,
        "user_id": check.user_id,
        "user_name": check.user_name,
        "vibe_rating": check.vibe_rating,
        "vibe_emoji": check.vibe_emoji,
        "comment": check.comment,
        "created_at": check.created_at.isoformat() if check.created_at else None,
    }
