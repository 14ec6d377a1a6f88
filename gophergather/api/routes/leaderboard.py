"""
gophergather.api.routes.leaderboard — Public community stats
=============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import Engine

from gophergather.api.deps import get_engine
from gophergather.services import leaderboard_service

router = APIRouter(tags=["public"])


@router.get("/leaderboard")
def leaderboard(engine: Engine = Depends(get_engine)):
    """Totals, this week's events and the three top-5 boards."""
    return leaderboard_service.leaderboard(engine)
