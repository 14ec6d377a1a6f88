"""
gophergather.api.rate_limit — Sliding-Window Rate Limiting
===========================================================

DB-backed sliding-window counters keyed by ``(bucket, key)``:

* ``check_email`` — 5 requests / 60 s per client IP.
* ``sign_in``     — 10 attempts / 60 s per client IP.

Refusals are HTTP 429 with a ``Retry-After`` header.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Depends, Request
from sqlalchemy import Engine, delete, func, select
from sqlalchemy.orm import Session

from gophergather.api.deps import client_ip, get_engine
from gophergather.database.models import RateLimitEvent
from gophergather.errors import RateLimited

logger = logging.getLogger(__name__)

# bucket → (max requests, window seconds)
RATE_LIMITS: dict[str, tuple[int, int]] = {
    "check_email": (5, 60),
    "sign_in": (10, 60),
}


class SlidingWindowLimiter:
    """Sliding-window rate limiter for one bucket.

    State lives in the ``rate_limit_events`` table so it survives restarts
    and is shared across workers.
    """

    def __init__(
        self,
        bucket: str,
        max_requests: int,
        window_seconds: int,
        *,
        engine: Engine,
    ) -> None:
        self.bucket = bucket
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.engine = engine

    @classmethod
    def for_bucket(cls, bucket: str, *, engine: Engine) -> SlidingWindowLimiter:
        max_requests, window_seconds = RATE_LIMITS[bucket]
        return cls(bucket, max_requests, window_seconds, engine=engine)

    def _normalize_dt(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def _prune(self, session: Session, key: str, cutoff: datetime) -> None:
        session.execute(
            delete(RateLimitEvent).where(
                RateLimitEvent.bucket == self.bucket,
                RateLimitEvent.key == key,
                RateLimitEvent.timestamp < cutoff,
            )
        )

    def check(self, key: str) -> tuple[bool, dict[str, Any]]:
        """Check if *key* is within the limit.

        Returns (allowed, info) where info contains:
          - remaining: requests remaining in the window
          - reset: seconds until the oldest request expires
          - limit: the max requests per window
        """
        now = datetime.now(UTC)
        cutoff = now - timedelta(seconds=self.window_seconds)

        with Session(self.engine) as session:
            self._prune(session, key, cutoff)
            timestamps = session.scalars(
                select(RateLimitEvent.timestamp)
                .where(RateLimitEvent.bucket == self.bucket, RateLimitEvent.key == key)
                .order_by(RateLimitEvent.timestamp.asc())
            ).all()
            session.commit()

        count = len(timestamps)
        if count >= self.max_requests:
            oldest = self._normalize_dt(timestamps[0])
            reset = (oldest + timedelta(seconds=self.window_seconds) - now).total_seconds()
            return False, {
                "remaining": 0,
                "reset": max(1, int(reset) + 1),
                "limit": self.max_requests,
            }

        return True, {
            "remaining": self.max_requests - count,
            "reset": self.window_seconds,
            "limit": self.max_requests,
        }

    def record(self, key: str) -> dict[str, Any]:
        """Record a request and return the updated info dict."""
        now = datetime.now(UTC)
        cutoff = now - timedelta(seconds=self.window_seconds)

        with Session(self.engine) as session:
            self._prune(session, key, cutoff)
            session.add(RateLimitEvent(bucket=self.bucket, key=key, timestamp=now))
            session.flush()
            count = session.scalar(
                select(func.count(RateLimitEvent.id)).where(
                    RateLimitEvent.bucket == self.bucket,
                    RateLimitEvent.key == key,
                )
            ) or 0
            session.commit()

        return {
            "remaining": max(0, self.max_requests - count),
            "reset": self.window_seconds,
            "limit": self.max_requests,
        }

    def reset(self, key: str | None = None) -> None:
        """Clear state for *key*, or the whole bucket."""
        with Session(self.engine) as session:
            stmt = delete(RateLimitEvent).where(RateLimitEvent.bucket == self.bucket)
            if key is not None:
                stmt = stmt.where(RateLimitEvent.key == key)
            session.execute(stmt)
            session.commit()


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------
async def enforce_rate_limit(bucket: str, key: str, engine: Engine) -> None:
    """Raise :class:`RateLimited` when *key* is over budget, else record it."""
    limiter = SlidingWindowLimiter.for_bucket(bucket, engine=engine)
    allowed, info = await asyncio.to_thread(limiter.check, key)

    if not allowed:
        logger.warning(
            "Rate limit exceeded on %s for %s: %d requests / %ds",
            bucket, key, limiter.max_requests, limiter.window_seconds,
        )
        raise RateLimited(info["reset"])

    await asyncio.to_thread(limiter.record, key)


def rate_limited(bucket: str):
    """Dependency factory: ``Depends(rate_limited("check_email"))``."""

    async def dependency(request: Request, engine: Engine = Depends(get_engine)) -> str:
        ip = client_ip(request)
        await enforce_rate_limit(bucket, ip, engine)
        return ip

    dependency.__name__ = f"rate_limited_{bucket}"
    return dependency
