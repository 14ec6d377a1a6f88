"""
gophergather.api.routes.events — Event, RSVP & vibe-check endpoints
====================================================================
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from gophergather.api.deps import (
    get_config,
    get_current_user,
    get_engine,
    get_optional_user,
    require_event_manager,
)
from gophergather.config import GatherConfig
from gophergather.constants import ALL_EVENTS
from gophergather.database.engine import run_db
from gophergather.database.models import User
from gophergather.errors import Forbidden
from gophergather.services import event_service, rsvp_service, vibe_service
from gophergather.services.upload_service import delete_upload, save_upload

router = APIRouter(tags=["events"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class EventFields(BaseModel):
    title: str | None = None
    description: str | None = None
    original_text: str | None = None
    date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None
    category: str | None = None
    audience: str | None = None
    post_url: str | None = None
    image_url: str | None = None
    club_id: str | None = None


class ModerationDecision(BaseModel):
    decision: str = Field(pattern="^(approve|reject)$")


class RsvpUpdate(BaseModel):
    status: str = "going"


class VibeCheckCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = None


# ---------------------------------------------------------------------------
# Listing & detail
# ---------------------------------------------------------------------------
@router.get("/events")
def list_events(
    category: str = Query(default=ALL_EVENTS),
    past_limit: int | None = Query(default=None, ge=0),
    engine: Engine = Depends(get_engine),
    cfg: GatherConfig = Depends(get_config),
):
    """Approved events split into happening-now / upcoming / past."""
    return event_service.list_public_events(
        engine,
        category,
        past_limit=cfg.past_events_page_size if past_limit is None else past_limit,
        duration_hours=cfg.default_event_duration_hours,
    )


@router.get("/events/pending")
def pending_events(
    user: User = Depends(require_event_manager),
    engine: Engine = Depends(get_engine),
    cfg: GatherConfig = Depends(get_config),
):
    events = event_service.list_pending_events(engine, user)
    return {
        "events": [
            event_service.event_to_dict(ev, duration_hours=cfg.default_event_duration_hours)
            for ev in events
        ]
    }


@router.get("/events/{event_id}")
def get_event(
    event_id: str,
    viewer: User | None = Depends(get_optional_user),
    engine: Engine = Depends(get_engine),
    cfg: GatherConfig = Depends(get_config),
):
    event = event_service.get_event(engine, event_id, viewer)
    data = event_service.event_to_dict(event, duration_hours=cfg.default_event_duration_hours)
    data["going_count"] = rsvp_service.going_count(engine, event_id)
    data["my_rsvp"] = rsvp_service.my_rsvp(engine, viewer, event_id)
    data["can_manage"] = event_service.can_manage_event(viewer, event)
    return data


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
@router.post("/events/submit", status_code=201)
def submit_event(
    body: EventFields,
    user: User = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    """Any signed-in student may suggest an event; it waits for review."""
    event = event_service.submit_event(engine, user, body.model_dump(exclude_unset=True))
    return {"success": True, "event_id": event.id, "status": event.status}


@router.patch("/events/{event_id}")
def update_event(
    event_id: str,
    body: EventFields,
    user: User = Depends(require_event_manager),
    engine: Engine = Depends(get_engine),
):
    changes: dict[str, Any] = body.model_dump(exclude_unset=True)
    changes.pop("club_id", None)
    event = event_service.update_event(engine, user, event_id, changes)
    return event_service.event_to_dict(event)


@router.delete("/events/{event_id}")
def soft_delete_event(
    event_id: str,
    user: User = Depends(require_event_manager),
    engine: Engine = Depends(get_engine),
):
    event = event_service.soft_delete_event(engine, user, event_id)
    return {"success": True, "event_id": event.id, "deleted_at": event.deleted_at.isoformat()}


@router.post("/events/{event_id}/restore")
def restore_event(
    event_id: str,
    user: User = Depends(require_event_manager),
    engine: Engine = Depends(get_engine),
):
    event = event_service.restore_event(engine, user, event_id)
    return {"success": True, "event_id": event.id}


@router.post("/events/{event_id}/moderate")
def moderate_event(
    event_id: str,
    body: ModerationDecision,
    user: User = Depends(require_event_manager),
    engine: Engine = Depends(get_engine),
):
    event = event_service.moderate_event(engine, user, event_id, body.decision)
    return {"success": True, "event_id": event.id, "status": event.status}


@router.post("/events/{event_id}/image")
async def upload_event_image(
    event_id: str,
    file: UploadFile,
    user: User = Depends(require_event_manager),
    engine: Engine = Depends(get_engine),
):
    """Attach (or replace) an event's flyer image."""
    previous = await run_db(event_service.get_event, engine, event_id, user)
    if not event_service.can_manage_event(user, previous):
        raise Forbidden("Not authorized")

    content = await file.read()
    url = await save_upload(
        file.filename or "upload.png", content, file.content_type, bucket="events"
    )

    try:
        event = await run_db(
            event_service.update_event, engine, user, event_id, {"image_url": url}
        )
    except Exception:
        delete_upload(url)
        raise

    if previous.image_url and previous.image_url != url:
        delete_upload(previous.image_url)
    return {"success": True, "event_id": event.id, "image_url": url}


# ---------------------------------------------------------------------------
# RSVPs
# ---------------------------------------------------------------------------
@router.put("/events/{event_id}/rsvp")
def set_rsvp(
    event_id: str,
    body: RsvpUpdate,
    user: User = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    cfg: GatherConfig = Depends(get_config),
):
    rsvp = rsvp_service.set_rsvp(
        engine, user, event_id, body.status,
        duration_hours=cfg.default_event_duration_hours,
    )
    return {
        "event_id": event_id,
        "status": rsvp.status,
        "going_count": rsvp_service.going_count(engine, event_id),
    }


@router.delete("/events/{event_id}/rsvp")
def clear_rsvp(
    event_id: str,
    user: User = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    removed = rsvp_service.clear_rsvp(engine, user, event_id)
    return {
        "event_id": event_id,
        "removed": removed,
        "going_count": rsvp_service.going_count(engine, event_id),
    }


# ---------------------------------------------------------------------------
# Vibe checks
# ---------------------------------------------------------------------------
@router.get("/events/{event_id}/vibe-checks")
def list_vibe_checks(
    event_id: str,
    viewer: User | None = Depends(get_optional_user),
    engine: Engine = Depends(get_engine),
):
    event = event_service.get_event(engine, event_id, viewer)
    checks = vibe_service.list_vibe_checks(engine, event.id)
    return {
        "event_id": event.id,
        "event_title": event.title,
        "stats": vibe_service.vibe_stats(checks),
        "comments": [
            vibe_service.vibe_check_to_dict(c) for c in vibe_service.visible_comments(checks)
        ],
    }


@router.post("/events/{event_id}/vibe-checks", status_code=201)
def submit_vibe_check(
    event_id: str,
    body: VibeCheckCreate,
    user: User = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    check = vibe_service.submit_vibe_check(engine, user, event_id, body.rating, body.comment)
    return vibe_service.vibe_check_to_dict(check)


@router.delete("/vibe-checks/{check_id}/comment")
def delete_vibe_comment(
    check_id: int,
    user: User = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    vibe_service.delete_vibe_comment(engine, user, check_id)
    return {"success": True, "id": check_id}
