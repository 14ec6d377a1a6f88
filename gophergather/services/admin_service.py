"""
gophergather.services.admin_service — Role Grants & Clubs
==========================================================

Privileged account changes.  Only ``admin`` users may call these; the
routes pass the resolved caller in as *actor*.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from gophergather.database.models import Club, ClubAdmin, User, UserType
from gophergather.errors import AlreadyRegistered, Forbidden, InvalidInput, NotFound

logger = logging.getLogger(__name__)


def _require_admin(actor: User | None) -> None:
    if actor is None or actor.user_type != UserType.ADMIN:
        raise Forbidden("Not authorized")


def grant_club_admin(engine, actor: User, email: str, club_id: str) -> User:
    """Make the account behind *email* the admin of *club_id*."""
    _require_admin(actor)
    address = (email or "").strip().lower()
    if not address or not club_id:
        raise InvalidInput("Both email and club_id are required.")

    with Session(engine, expire_on_commit=False) as session:
        if session.get(Club, club_id) is None:
            raise NotFound("Organization not found")
        user = session.scalar(select(User).where(User.email == address))
        if user is None:
            raise NotFound(f"No account found for {address}")
        if user.user_type == UserType.ADMIN:
            raise InvalidInput("Admins already manage every club.")

        user.user_type = UserType.CLUB_ADMIN.value
        user.club_id = club_id
        if session.get(ClubAdmin, (user.id, club_id)) is None:
            session.add(ClubAdmin(user_id=user.id, club_id=club_id, granted_by=actor.id))
        session.commit()

    logger.info("%s granted club admin for %s by %s", address, club_id, actor.email)
    return user


def list_clubs(engine) -> list[Club]:
    with Session(engine, expire_on_commit=False) as session:
        clubs = session.scalars(select(Club).order_by(Club.name.asc())).all()
        session.expunge_all()
        return list(clubs)


def create_club(engine, actor: User, name: str, description: str | None = None) -> Club:
    _require_admin(actor)
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Club name is required.")

    with Session(engine, expire_on_commit=False) as session:
        if session.scalar(select(Club).where(Club.name == name)) is not None:
            raise AlreadyRegistered(f"A club named {name!r} already exists.")
        club = Club(name=name, description=(description or "").strip() or None)
        session.add(club)
        session.commit()

    logger.info("Club %r created by %s", name, actor.email)
    return club
