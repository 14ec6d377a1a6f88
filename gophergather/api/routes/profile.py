"""
gophergather.api.routes.profile — The signed-in user's profile
===============================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, UploadFile
from pydantic import BaseModel
from sqlalchemy import Engine

from gophergather.api.deps import get_config, get_current_user, get_engine
from gophergather.config import GatherConfig
from gophergather.database.engine import run_db
from gophergather.database.models import User
from gophergather.services import profile_service
from gophergather.services.upload_service import delete_upload, save_upload

router = APIRouter(prefix="/profile", tags=["profile"])
logger = logging.getLogger(__name__)


class ProfileUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None


@router.get("")
def get_profile(user: User = Depends(get_current_user)):
    return profile_service.profile_to_dict(user)


@router.patch("")
def update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    updated = profile_service.update_profile(
        engine,
        user,
        first_name=body.first_name,
        last_name=body.last_name,
        full_name=body.full_name,
    )
    return profile_service.profile_to_dict(updated)


@router.get("/overview")
def overview(
    user: User = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
    cfg: GatherConfig = Depends(get_config),
):
    return profile_service.profile_overview(
        engine, user, duration_hours=cfg.default_event_duration_hours
    )


@router.post("/avatar")
async def upload_avatar(
    file: UploadFile,
    user: User = Depends(get_current_user),
    engine: Engine = Depends(get_engine),
):
    content = await file.read()
    url = await save_upload(
        file.filename or "avatar.png", content, file.content_type, bucket="avatars"
    )

    updated, previous = await run_db(profile_service.set_avatar, engine, user, url)
    if previous and previous != url:
        delete_upload(previous)
    return profile_service.profile_to_dict(updated)
