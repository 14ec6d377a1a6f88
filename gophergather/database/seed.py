"""
gophergather.database.seed — Default Clubs Seeder
==================================================

A handful of starter clubs so admins can create events (which must belong
to a club) on a fresh database.

Idempotent — only inserts clubs whose name doesn't already exist.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select

from gophergather.database.engine import get_session
from gophergather.database.models import Club

logger = logging.getLogger(__name__)


DEFAULT_CLUBS: dict[str, str] = {
    "Student Government": "Campus-wide events from student government.",
    "Career Center": "Career fairs, resume reviews and employer sessions.",
    "International Student Association": "Cultural nights and global food fairs.",
    "Recreation & Wellness": "Intramurals, fitness classes and outdoor trips.",
}
"""Each entry maps club ``name`` → ``description``."""


def seed_default_clubs(engine: Engine) -> None:
    """Insert default clubs that don't yet exist.

    Safe to call on every startup.  Clubs renamed or edited by admins are
    left alone.
    """
    inserted = 0
    with get_session(engine) as session:
        existing = set(session.scalars(select(Club.name)))
        for name, description in DEFAULT_CLUBS.items():
            if name not in existing:
                session.add(Club(name=name, description=description))
                inserted += 1

    if inserted:
        logger.info("Seeded %d default clubs.", inserted)
