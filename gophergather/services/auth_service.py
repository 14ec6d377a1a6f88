"""
gophergather.services.auth_service — Accounts & Sessions
=========================================================

E-mail + password accounts with bcrypt hashes and server-side session rows.

Every sign-in creates an :class:`AuthSession`; the API wraps its id in a
signed JWT (``sid`` claim).  A token is only honoured while its session row
is neither revoked nor expired, so sign-out and expiry take effect
immediately instead of waiting for the JWT ``exp``.

Session lengths follow the campus convention:
* ``campus-standard`` — 3 days (shared lab computers).
* ``campus-extended`` — 14 days ("remember me").
"""

from __future__ import annotations

import logging
import math
import secrets
from datetime import UTC, datetime, timedelta

import bcrypt
from email_validator import EmailNotValidError, validate_email
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gophergather.database.models import (
    AuthSession,
    AuthToken,
    SessionType,
    TokenPurpose,
    User,
)
from gophergather.errors import AlreadyRegistered, AuthenticationFailed, InvalidInput

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72  # bcrypt ignores anything past this

DEFAULT_SESSION_DAYS = 3
REMEMBER_ME_SESSION_DAYS = 14

TOKEN_TTL: dict[str, timedelta] = {
    TokenPurpose.CONFIRM: timedelta(days=2),
    TokenPurpose.RESET: timedelta(hours=1),
}


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash or over-long password
        return False


def validate_new_password(password: str, confirm_password: str) -> None:
    """Raise :class:`InvalidInput` unless the pair is acceptable."""
    if password != confirm_password:
        raise InvalidInput(
            "Passwords do not match. Please make sure both passwords are identical."
        )
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidInput(
            f"Password must be at most {MAX_PASSWORD_BYTES} bytes long."
        )


def normalize_email(email: str) -> str:
    """Validate syntax and return the lower-cased address."""
    try:
        result = validate_email((email or "").strip(), check_deliverability=False)
    except EmailNotValidError:
        raise InvalidInput("Please enter a valid email address.") from None
    return result.normalized.lower()


def _find_user(session: Session, email: str) -> User | None:
    return session.scalar(select(User).where(User.email == email))


def _issue_token(session: Session, user_id: str, purpose: TokenPurpose) -> str:
    token = secrets.token_urlsafe(32)
    session.add(AuthToken(token=token, user_id=user_id, purpose=purpose.value))
    return token


def _consume_token(
    session: Session, token: str, purpose: TokenPurpose, now: datetime
) -> AuthToken | None:
    row = session.get(AuthToken, token)
    if row is None or row.purpose != purpose.value or row.used_at is not None:
        return None
    if _utc(row.created_at) + TOKEN_TTL[purpose] < now:
        return None
    row.used_at = now
    return row


# ---------------------------------------------------------------------------
# Sign-up / confirmation
# ---------------------------------------------------------------------------
def sign_up(
    engine,
    email: str,
    password: str,
    confirm_password: str,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
) -> tuple[User, str]:
    """Create a student account.

    Returns the new user and its e-mail confirmation token.  Delivering the
    token is left to whoever runs the mail relay.

    Raises
    ------
    InvalidInput
        Mismatched / short passwords or a malformed address.
    AlreadyRegistered
        An account with this address exists.
    """
    validate_new_password(password, confirm_password)
    address = normalize_email(email)

    taken = AlreadyRegistered(
        f"An account with {address} already exists. Please sign in "
        "instead or reset your password if you've forgotten it."
    )
    with Session(engine, expire_on_commit=False) as session:
        if _find_user(session, address) is not None:
            raise taken
        full_name = " ".join(p.strip() for p in (first_name, last_name) if p and p.strip())
        user = User(
            email=address,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            full_name=full_name or None,
        )
        session.add(user)
        try:
            session.flush()
            token = _issue_token(session, user.id, TokenPurpose.CONFIRM)
            session.commit()
        except IntegrityError:
            # Lost a race with a concurrent sign-up for the same address
            session.rollback()
            raise taken from None

    logger.info("New account registered: %s", address)
    return user, token


def confirm_email(engine, token: str, now: datetime | None = None) -> User:
    now = now or datetime.now(UTC)
    with Session(engine, expire_on_commit=False) as session:
        row = _consume_token(session, token, TokenPurpose.CONFIRM, now)
        if row is None:
            raise InvalidInput("Invalid confirmation link")
        user = session.get(User, row.user_id)
        user.email_confirmed = True
        session.commit()
    logger.info("E-mail confirmed for %s", user.email)
    return user


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
def sign_in(
    engine,
    email: str,
    password: str,
    remember_me: bool = False,
    *,
    session_days: int = DEFAULT_SESSION_DAYS,
    remember_me_days: int = REMEMBER_ME_SESSION_DAYS,
    now: datetime | None = None,
) -> tuple[User, AuthSession]:
    """Check credentials and open a new session.

    Raises :class:`AuthenticationFailed` for an unknown address or a wrong
    password (same message for both).
    """
    now = now or datetime.now(UTC)
    address = (email or "").strip().lower()

    with Session(engine, expire_on_commit=False) as session:
        user = _find_user(session, address)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed sign-in for %s", address)
            raise AuthenticationFailed("Invalid login credentials")

        days = remember_me_days if remember_me else session_days
        auth_session = AuthSession(
            id=secrets.token_urlsafe(32),
            user_id=user.id,
            session_type=(SessionType.EXTENDED if remember_me else SessionType.STANDARD).value,
            created_at=now,
            expires_at=now + timedelta(days=days),
        )
        session.add(auth_session)
        session.commit()

    logger.info("Signed in %s (%d-day session)", address, days)
    return user, auth_session


def resolve_session(
    engine, session_id: str, now: datetime | None = None
) -> tuple[User, AuthSession]:
    """Return the user behind *session_id*, or raise :class:`AuthenticationFailed`."""
    now = now or datetime.now(UTC)
    with Session(engine, expire_on_commit=False) as session:
        auth_session = session.get(AuthSession, session_id)
        if auth_session is None or auth_session.revoked_at is not None:
            raise AuthenticationFailed("Session is no longer valid")
        if _utc(auth_session.expires_at) <= now:
            raise AuthenticationFailed("Session expired")
        user = session.get(User, auth_session.user_id)
        if user is None:
            raise AuthenticationFailed("Session is no longer valid")
        return user, auth_session


def sign_out(engine, session_id: str, now: datetime | None = None) -> bool:
    """Revoke a session.  Returns False if it was unknown or already revoked."""
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        auth_session = session.get(AuthSession, session_id)
        if auth_session is None or auth_session.revoked_at is not None:
            return False
        auth_session.revoked_at = now
        session.commit()
    logger.info("Session %s… revoked", session_id[:8])
    return True


def session_status(auth_session: AuthSession, now: datetime | None = None) -> dict:
    """Countdown info for the "signed in for N more days" badge."""
    now = now or datetime.now(UTC)
    expires = _utc(auth_session.expires_at)
    remaining = (expires - now).total_seconds() / 86400
    extended = auth_session.session_type == SessionType.EXTENDED
    return {
        "type": "14-day session" if extended else "3-day session",
        "session_type": auth_session.session_type,
        "expires_at": expires.isoformat(),
        "days_left": max(0, math.ceil(remaining)),
    }


def prune_expired_sessions(engine, now: datetime | None = None) -> int:
    """Delete expired and revoked session rows.  Returns the number removed."""
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        result = session.execute(
            delete(AuthSession).where(
                or_(AuthSession.expires_at <= now, AuthSession.revoked_at.is_not(None))
            )
        )
        session.commit()
    removed = result.rowcount or 0
    if removed:
        logger.info("Pruned %d expired sessions", removed)
    return removed


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------
def request_password_reset(engine, email: str) -> str | None:
    """Issue a reset token when *email* belongs to an account.

    Callers must answer the same way whether or not a token was issued.
    """
    address = (email or "").strip().lower()
    with Session(engine) as session:
        user = _find_user(session, address)
        if user is None:
            return None
        token = _issue_token(session, user.id, TokenPurpose.RESET)
        session.commit()
    logger.info("Password reset requested for %s", address)
    return token


def reset_password(
    engine,
    token: str,
    password: str,
    confirm_password: str,
    now: datetime | None = None,
) -> None:
    """Set a new password and revoke every open session of the account."""
    validate_new_password(password, confirm_password)
    now = now or datetime.now(UTC)
    with Session(engine) as session:
        row = _consume_token(session, token, TokenPurpose.RESET, now)
        if row is None:
            raise InvalidInput(
                "Invalid or expired reset link. Please request a new password reset."
            )
        user = session.get(User, row.user_id)
        user.password_hash = hash_password(password)
        for auth_session in user.sessions:
            if auth_session.revoked_at is None:
                auth_session.revoked_at = now
        session.commit()
        logger.info("Password reset for %s", user.email)


def email_exists(engine, email: str) -> bool:
    address = (email or "").strip().lower()
    with Session(engine) as session:
        return _find_user(session, address) is not None
