"""
gophergather.api.main — FastAPI application entry point
========================================================

Run with::

    uvicorn gophergather.api.main:app --reload --port 8000
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.staticfiles import StaticFiles

load_dotenv()

from gophergather.api.auth import router as auth_router  # noqa: E402
from gophergather.api.deps import get_engine  # noqa: E402
from gophergather.api.routes.admin import router as admin_router  # noqa: E402
from gophergather.api.routes.events import router as events_router  # noqa: E402
from gophergather.api.routes.leaderboard import router as leaderboard_router  # noqa: E402
from gophergather.api.routes.profile import router as profile_router  # noqa: E402
from gophergather.database.engine import init_db, run_db  # noqa: E402
from gophergather.errors import GatherError, InvalidInput  # noqa: E402
from gophergather.services.auth_service import prune_expired_sessions  # noqa: E402
from gophergather.services.upload_service import UPLOAD_DIR, ensure_upload_dir  # noqa: E402

logger = logging.getLogger(__name__)

SESSION_SWEEP_SECONDS = 30 * 60


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


async def _session_sweeper(engine, interval: float = SESSION_SWEEP_SECONDS) -> None:
    """Prune expired / revoked sessions every *interval* seconds."""
    while True:
        try:
            await run_db(prune_expired_sessions, engine)
        except Exception:
            logger.exception("Session sweep failed; retrying next interval")
        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — ensure tables, start the session sweeper."""
    ensure_upload_dir()

    engine = get_engine()
    await run_db(init_db, engine)
    sweeper = asyncio.create_task(_session_sweeper(engine))
    logger.info("GopherGather API started — engine ready (%s)", engine.url.database)
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    logger.info("GopherGather API shutting down")


app = FastAPI(
    title="GopherGather API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GatherError)
async def gather_error_handler(request: Request, exc: GatherError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies keep FastAPI's 422 but use the error shape."""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=422, content=InvalidInput(message).to_dict())


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(events_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


# Uploaded flyers and avatars
app.mount(
    "/api/uploads",
    StaticFiles(directory=str(UPLOAD_DIR), check_dir=False),
    name="uploads",
)
