"""
gophergather.api.deps — FastAPI dependency injection
=====================================================
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, Request
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from gophergather.api import tokens
from gophergather.config import GatherConfig, load_config
from gophergather.constants import EVENT_MANAGER_TYPES
from gophergather.database.engine import create_db_engine
from gophergather.database.models import AuthSession, User, UserType
from gophergather.errors import AuthenticationFailed, Forbidden
from gophergather.services import auth_service


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> GatherConfig:
    return load_config()


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------
@dataclass
class CurrentUser:
    user: User
    session: AuthSession


def _bearer(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def _resolve(token: str, engine: Engine) -> CurrentUser:
    try:
        payload = tokens.decode_token(token)
    except InvalidTokenError:
        raise AuthenticationFailed("Invalid token") from None
    sid = payload.get("sid")
    if not sid:
        raise AuthenticationFailed("Invalid token")
    user, auth_session = auth_service.resolve_session(engine, sid)
    return CurrentUser(user=user, session=auth_session)


def get_current_session(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> CurrentUser:
    """Validate the bearer JWT and its server-side session.  401 otherwise."""
    token = _bearer(authorization)
    if token is None:
        raise AuthenticationFailed("Missing token")
    return _resolve(token, engine)


def get_current_user(current: CurrentUser = Depends(get_current_session)) -> User:
    return current.user


def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> User | None:
    """Like :func:`get_current_user` but anonymous callers get ``None``.

    A token that is present but invalid is still rejected.
    """
    token = _bearer(authorization)
    if token is None:
        return None
    return _resolve(token, engine).user


def require_event_manager(user: User = Depends(get_current_user)) -> User:
    if user.user_type not in EVENT_MANAGER_TYPES:
        raise Forbidden("Not authorized")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.user_type != UserType.ADMIN:
        raise Forbidden("Not authorized")
    return user


def require_api_token(
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Service-to-service bearer check against ``ADMIN_API_TOKEN``."""
    expected = os.getenv("ADMIN_API_TOKEN", "")
    token = _bearer(authorization)
    if not expected or token is None or not secrets.compare_digest(
        token.encode("utf-8"), expected.encode("utf-8")
    ):
        raise AuthenticationFailed("Unauthorized")


def client_ip(request: Request) -> str:
    """First hop of ``X-Forwarded-For``, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
