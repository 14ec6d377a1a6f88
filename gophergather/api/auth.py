"""
gophergather.api.auth — Account & session endpoints
====================================================

Flow:
1. ``POST /api/auth/sign-up`` creates the account and a confirmation token.
2. ``GET /api/auth/confirm?token=…`` marks the address confirmed.
3. ``POST /api/auth/sign-in`` opens a 3- or 14-day session and returns a
   bearer JWT.
4. Every authenticated request re-checks the session row, so
   ``POST /api/auth/sign-out`` takes effect immediately.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import Engine

from gophergather.api import tokens
from gophergather.api.deps import CurrentUser, get_config, get_current_session, get_engine
from gophergather.api.rate_limit import rate_limited
from gophergather.config import GatherConfig
from gophergather.services import auth_service
from gophergather.services.profile_service import profile_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED_MESSAGE = (
    "If an account exists for this email, you will receive a password reset link shortly."
)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SignUpRequest(BaseModel):
    email: str
    password: str
    confirm_password: str
    first_name: str | None = None
    last_name: str | None = None


class SignInRequest(BaseModel):
    email: str
    password: str
    remember_me: bool = False


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    token: str
    password: str
    confirm_password: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/sign-up", status_code=201)
def sign_up(body: SignUpRequest, engine: Engine = Depends(get_engine)):
    user, token = auth_service.sign_up(
        engine,
        body.email,
        body.password,
        body.confirm_password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    # Mail delivery is external; the relay picks the link up from here.
    logger.debug("Confirmation token for %s: %s", user.email, token)
    return {
        "user": profile_to_dict(user),
        "message": "Account created. Check your email to confirm your address.",
    }


@router.get("/confirm")
def confirm(token: str, engine: Engine = Depends(get_engine)):
    user = auth_service.confirm_email(engine, token)
    return {"confirmed": True, "email": user.email}


@router.post("/sign-in")
def sign_in(
    body: SignInRequest,
    engine: Engine = Depends(get_engine),
    cfg: GatherConfig = Depends(get_config),
    _ip: str = Depends(rate_limited("sign_in")),
):
    user, auth_session = auth_service.sign_in(
        engine,
        body.email,
        body.password,
        body.remember_me,
        session_days=cfg.default_session_days,
        remember_me_days=cfg.remember_me_session_days,
    )
    return {
        "access_token": tokens.issue_token(user, auth_session),
        "token_type": "bearer",
        "user": profile_to_dict(user),
        "session": auth_service.session_status(auth_session),
    }


@router.post("/sign-out")
def sign_out(
    current: CurrentUser = Depends(get_current_session),
    engine: Engine = Depends(get_engine),
):
    auth_service.sign_out(engine, current.session.id)
    return {"signed_out": True}


@router.get("/me")
def me(current: CurrentUser = Depends(get_current_session)):
    return {
        "user": profile_to_dict(current.user),
        "session": auth_service.session_status(current.session),
    }


@router.get("/session")
def session_status(current: CurrentUser = Depends(get_current_session)):
    return auth_service.session_status(current.session)


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordRequest, engine: Engine = Depends(get_engine)):
    token = auth_service.request_password_reset(engine, body.email)
    if token is not None:
        logger.debug("Reset token issued: %s", token)
    return {"message": RESET_REQUESTED_MESSAGE}


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, engine: Engine = Depends(get_engine)):
    auth_service.reset_password(engine, body.token, body.password, body.confirm_password)
    return {"message": "Password updated. Please sign in again."}
