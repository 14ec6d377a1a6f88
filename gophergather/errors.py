"""
gophergather.errors — Application Error Taxonomy
=================================================

Services raise these; the API turns them into
``{"error": <code>, "message": <text>}`` JSON bodies via a single exception
handler registered in :mod:`gophergather.api.main`.
"""

from __future__ import annotations


class GatherError(Exception):
    """Base class for expected, user-facing failures."""

    code = "error"
    status_code = 400
    headers: dict[str, str] | None = None

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return cls.code.replace("_", " ").capitalize()

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class InvalidInput(GatherError):
    """Raised when a form field is missing or malformed."""

    code = "invalid"
    status_code = 400


class AuthenticationFailed(GatherError):
    code = "unauthorized"
    status_code = 401


class Forbidden(GatherError):
    """Raised when the caller's role does not allow the action."""

    code = "forbidden"
    status_code = 403


class NotFound(GatherError):
    code = "not_found"
    status_code = 404


class NotEligible(GatherError):
    """Raised when the target exists but is in the wrong state for the action
    (e.g. purging an event still inside its grace period)."""

    code = "not_eligible"
    status_code = 409


class AlreadyRegistered(GatherError):
    code = "already_registered"
    status_code = 409


class RateLimited(GatherError):
    """Raised when a client is over its sliding-window budget."""

    code = "rate_limit_exceeded"
    status_code = 429

    def __init__(self, retry_after: int, message: str = "Too Many Requests") -> None:
        super().__init__(message)
        self.retry_after = retry_after
        self.headers = {"Retry-After": str(retry_after)}

    def to_dict(self) -> dict[str, str | int]:
        return {**super().to_dict(), "retry_after": self.retry_after}
