"""
gophergather.engine.schedule — Event Time Logic
================================================

Pure functions that decide whether an event is *current*, *upcoming* or
*past*, plus the date/time formatting used by listings.

Event dates and times are wall-clock strings (``YYYY-MM-DD`` and
``HH:MM[:SS]``) compared against the server's local, timezone-naive clock.
Anything with ``date`` / ``start_time`` / ``end_time`` attributes works as an
event here: ORM rows, or ``SimpleNamespace`` objects in tests.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from typing import Any, Literal

from gophergather.constants import ALL_EVENTS, DATE_TBA, TIME_TBA

logger = logging.getLogger(__name__)

EventStatusLabel = Literal["past", "current", "upcoming"]

DEFAULT_DURATION_HOURS = 2
END_OF_DAY = "23:59:59"

_AMPM_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AaPp][Mm])$")
_HMS_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


# ---------------------------------------------------------------------------
# Time-string helpers
# ---------------------------------------------------------------------------
def to_24h(text: str | None) -> str | None:
    """Parse ``h:mm[:ss] AM/PM`` or ``HH:mm[:ss]`` into ``HH:MM:SS``.

    Returns ``None`` for empty input, any other format, or an impossible
    clock reading (hour past 23, or past 12 with AM/PM; minute or second
    past 59).

    >>> to_24h("7:30 pm")
    '19:30:00'
    >>> to_24h("12:05 AM")
    '00:05:00'
    """
    if not text:
        return None
    s = text.strip()

    m = _AMPM_RE.match(s)
    if m:
        hour, minute = int(m.group(1)), int(m.group(2))
        second = int(m.group(3) or 0)
        if hour > 12 or minute > 59 or second > 59:
            return None
        meridiem = m.group(4).lower()
        if meridiem == "pm" and hour < 12:
            hour += 12
        if meridiem == "am" and hour == 12:
            hour = 0
        return f"{hour:02d}:{minute:02d}:{second:02d}"

    m = _HMS_RE.match(s)
    if m:
        hour, minute = int(m.group(1)), int(m.group(2))
        second = int(m.group(3) or 0)
        if hour > 23 or minute > 59 or second > 59:
            return None
        return f"{hour:02d}:{minute:02d}:{second:02d}"

    return None


def add_hours(hhmmss: str, hours: int) -> str:
    """Add *hours* to a wall-clock time, wrapping past midnight."""
    parts = [int(p) for p in hhmmss.split(":")]
    hour, minute = parts[0], parts[1]
    second = parts[2] if len(parts) > 2 else 0
    shifted = datetime(2000, 1, 1, hour, minute, second) + timedelta(hours=hours)
    return shifted.strftime("%H:%M:%S")


def normalize_time(text: str) -> str:
    """``HH:MM`` → ``HH:MM:00``; ``HH:MM:SS`` is returned unchanged."""
    if ":" in text and len(text.split(":")) == 2:
        return f"{text}:00"
    return text


def _clock(now: datetime) -> tuple[str, str]:
    """Return (``YYYY-MM-DD``, ``HH:MM:00``) for *now*, seconds dropped."""
    return now.strftime("%Y-%m-%d"), now.strftime("%H:%M:00")


def _same_day_end(start: str, duration_hours: int) -> str:
    # Not wrapped: a 23:00 start compares against "25:00:00" on the same day.
    hour, minute = (int(p) for p in start.split(":")[:2])
    return f"{hour + duration_hours:02d}:{minute:02d}:00"


# ---------------------------------------------------------------------------
# Status classification
# ---------------------------------------------------------------------------
def event_status(
    event: Any,
    now: datetime | None = None,
    *,
    duration_hours: int = DEFAULT_DURATION_HOURS,
) -> EventStatusLabel:
    """Classify a single event as ``past``, ``current`` or ``upcoming``.

    * No date → ``upcoming``.
    * Date before / after today → ``past`` / ``upcoming``.
    * Today with no start time → ``current``.
    * Today with a start time → compared against the end time, or against
      start + *duration_hours* when no end time was given.
    """
    if not event.date:
        return "upcoming"
    now = now or datetime.now()
    today, clock = _clock(now)

    if event.date < today:
        return "past"
    if event.date > today:
        return "upcoming"

    if not event.start_time:
        return "current"

    start = normalize_time(event.start_time)
    if event.end_time:
        end = normalize_time(event.end_time)
    else:
        end = _same_day_end(start, duration_hours)

    if start <= clock <= end:
        return "current"
    if end < clock:
        return "past"
    return "upcoming"


def event_end(
    event: Any, *, duration_hours: int = DEFAULT_DURATION_HOURS
) -> datetime | None:
    """Return the local end datetime of *event*, or ``None`` without a date.

    Explicit end time wins; otherwise start + *duration_hours* (hour wrapped
    modulo 24, same calendar day); otherwise end of day.
    """
    if not event.date:
        return None

    if event.end_time:
        end = event.end_time + ":00" if len(event.end_time) == 5 else event.end_time
    elif event.start_time:
        hour, minute = (int(p) for p in event.start_time.split(":")[:2])
        end = f"{(hour + duration_hours) % 24:02d}:{minute:02d}:00"
    else:
        end = END_OF_DAY

    try:
        return datetime.combine(date.fromisoformat(event.date), time.fromisoformat(end))
    except ValueError:
        logger.warning("Unparseable schedule on event %s: %s %s",
                       getattr(event, "id", "?"), event.date, end)
        return None


def is_past(event: Any, now: datetime, *, duration_hours: int = DEFAULT_DURATION_HOURS) -> bool:
    end = event_end(event, duration_hours=duration_hours)
    return end is not None and end < now


def is_current(event: Any, now: datetime, *, duration_hours: int = DEFAULT_DURATION_HOURS) -> bool:
    """True when *event* is today and within its time window."""
    today, _ = _clock(now)
    if not event.date or event.date != today:
        return False
    return event_status(event, now, duration_hours=duration_hours) == "current"


@dataclass
class EventBuckets:
    """Result of :func:`categorize_events`."""

    current: list[Any] = field(default_factory=list)
    upcoming: list[Any] = field(default_factory=list)
    past: list[Any] = field(default_factory=list)


def categorize_events(
    events: Iterable[Any],
    now: datetime | None = None,
    *,
    duration_hours: int = DEFAULT_DURATION_HOURS,
) -> EventBuckets:
    """Split *events* into current / upcoming / past.

    Soft-deleted events are dropped.  Past events are sorted newest-first by
    end datetime; current and upcoming keep the input order.
    """
    now = now or datetime.now()
    buckets = EventBuckets()
    for ev in events:
        if getattr(ev, "deleted_at", None):
            continue
        if is_past(ev, now, duration_hours=duration_hours):
            buckets.past.append(ev)
        elif is_current(ev, now, duration_hours=duration_hours):
            buckets.current.append(ev)
        else:
            buckets.upcoming.append(ev)

    buckets.past.sort(
        key=lambda ev: event_end(ev, duration_hours=duration_hours),
        reverse=True,
    )
    return buckets


def filter_by_category(events: Sequence[Any], category: str | None) -> list[Any]:
    """Keep events in *category*; ``"All Events"`` (or nothing) keeps all."""
    if not category or category == ALL_EVENTS:
        return list(events)
    return [ev for ev in events if ev.category == category]


# ---------------------------------------------------------------------------
# Calendar windows
# ---------------------------------------------------------------------------
def week_range(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Monday 00:00 → next Monday 00:00 around *now* (local, naive)."""
    now = now or datetime.now()
    monday = datetime.combine(now.date() - timedelta(days=now.weekday()), time.min)
    return monday, monday + timedelta(days=7)


def as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC.
    return ts.replace(tzinfo=UTC) if ts.tzinfo is None else ts


def days_since(ts: datetime, now: datetime | None = None) -> int:
    """Whole days elapsed since *ts* (floored)."""
    now = as_utc(now) if now else datetime.now(UTC)
    return math.floor((now - as_utc(ts)).total_seconds() / 86400)


def days_until_purge(
    deleted_at: datetime, now: datetime | None = None, grace_days: int = 30
) -> int:
    """Days left in the soft-delete grace period (zero or negative → purgeable)."""
    return grace_days - days_since(deleted_at, now)


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------
def format_date(date_str: str | None) -> str:
    """``2026-01-05`` → ``Monday, January 5, 2026``."""
    if not date_str:
        return DATE_TBA
    try:
        d = date.fromisoformat(date_str)
    except ValueError:
        return DATE_TBA
    return f"{d:%A}, {d:%B} {d.day}, {d.year}"


def format_time(time_str: str | None) -> str:
    """``19:30`` → ``7:30 PM``."""
    if not time_str:
        return TIME_TBA
    hours, minutes = time_str.split(":")[:2]
    hour24 = int(hours)
    hour12 = 12 if hour24 == 0 else hour24 - 12 if hour24 > 12 else hour24
    period = "PM" if hour24 >= 12 else "AM"
    return f"{hour12}:{minutes} {period}"


def display_time_range(start: str | None, end: str | None) -> str:
    if not start:
        return TIME_TBA
    if end:
        return f"{format_time(start)} - {format_time(end)}"
    return format_time(start)
