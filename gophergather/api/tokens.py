"""
gophergather.api.tokens — JWT signing key & session tokens
===========================================================

The signing secret is validated once, at import time: the API refuses to
start with a missing, short or placeholder ``JWT_SECRET``.

A token carries:
* ``sub`` — user id
* ``sid`` — :class:`~gophergather.database.models.AuthSession` id
* ``user_type`` — role at sign-in time (informational; the DB is checked
  on every request)
* ``exp`` — the session's expiry
"""

from __future__ import annotations

import os

import jwt

from gophergather.database.models import AuthSession, User

_WEAK_SECRETS = frozenset({
    "gophergather-dev-secret-change-me",
    "generate-with-python-secrets-token-urlsafe-64",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


def issue_token(user: User, auth_session: AuthSession) -> str:
    payload = {
        "sub": user.id,
        "sid": auth_session.id,
        "user_type": user.user_type,
        "exp": auth_session.expires_at,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Verify signature and expiry.  Raises :class:`jwt.InvalidTokenError`."""
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
