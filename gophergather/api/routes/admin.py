"""
gophergather.api.routes.admin — Privileged endpoints
=====================================================

* Role grants and clubs (admins only).
* Direct event publishing for admins and club admins.
* Deleted-event management (list / purge).
* The service-token e-mail check, rate limited per client IP.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import Engine

from gophergather.api.deps import (
    get_config,
    get_engine,
    require_admin,
    require_api_token,
    require_event_manager,
)
from gophergather.api.rate_limit import rate_limited
from gophergather.api.routes.events import EventFields
from gophergather.config import GatherConfig
from gophergather.database.models import User
from gophergather.errors import InvalidInput
from gophergather.services import admin_service, auth_service, event_service

router = APIRouter(tags=["admin"])
logger = logging.getLogger(__name__)

CHECK_EMAIL_MESSAGE = "If this email is registered, you will receive a response shortly."


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class GrantClubAdmin(BaseModel):
    email: str
    club_id: str


class ClubCreate(BaseModel):
    name: str
    description: str | None = None


class CheckEmailRequest(BaseModel):
    email: str | None = None


# ---------------------------------------------------------------------------
# Roles & clubs
# ---------------------------------------------------------------------------
@router.post("/admin/grant-club-admin")
def grant_club_admin(
    body: GrantClubAdmin,
    admin: User = Depends(require_admin),
    engine: Engine = Depends(get_engine),
):
    user = admin_service.grant_club_admin(engine, admin, body.email, body.club_id)
    return {"success": True, "user_id": user.id, "club_id": user.club_id}


@router.get("/clubs")
def list_clubs(engine: Engine = Depends(get_engine)):
    return {
        "clubs": [
            {"id": c.id, "name": c.name, "description": c.description}
            for c in admin_service.list_clubs(engine)
        ]
    }


@router.post("/admin/clubs", status_code=201)
def create_club(
    body: ClubCreate,
    admin: User = Depends(require_admin),
    engine: Engine = Depends(get_engine),
):
    club = admin_service.create_club(engine, admin, body.name, body.description)
    return {"id": club.id, "name": club.name, "description": club.description}


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@router.post("/events/create")
def create_event(
    body: EventFields,
    user: User = Depends(require_event_manager),
    engine: Engine = Depends(get_engine),
):
    """Publish an approved event and record it in the audit log."""
    event = event_service.create_event(engine, user, body.model_dump(exclude_unset=True))
    return {"success": True, "event_id": event.id}


@router.get("/admin/events/deleted")
def list_deleted_events(
    user: User = Depends(require_event_manager),
    engine: Engine = Depends(get_engine),
    cfg: GatherConfig = Depends(get_config),
):
    return {
        "grace_days": cfg.soft_delete_grace_days,
        "events": event_service.list_deleted_events(
            engine, user, grace_days=cfg.soft_delete_grace_days
        ),
    }


@router.delete("/admin/events/{event_id}/permanent")
def permanently_delete_event(
    event_id: str,
    admin: User = Depends(require_admin),
    engine: Engine = Depends(get_engine),
    cfg: GatherConfig = Depends(get_config),
):
    event = event_service.permanently_delete_event(
        engine, admin, event_id, grace_days=cfg.soft_delete_grace_days
    )
    return {
        "success": True,
        "event_id": event.id,
        "permanently_deleted_at": event.permanently_deleted_at.isoformat(),
    }


# ---------------------------------------------------------------------------
# E-mail check
# ---------------------------------------------------------------------------
@router.post("/check-email")
def check_email(
    body: CheckEmailRequest | None = None,
    _auth: None = Depends(require_api_token),
    ip: str = Depends(rate_limited("check_email")),
    engine: Engine = Depends(get_engine),
):
    """Answer identically whether or not the address has an account."""
    if body is None or not body.email:
        raise InvalidInput("Invalid request")
    exists = auth_service.email_exists(engine, body.email)
    logger.debug("check-email from %s (match=%s)", ip, exists)
    return {"message": CHECK_EMAIL_MESSAGE}
