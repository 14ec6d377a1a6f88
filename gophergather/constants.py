"""
gophergather.constants — Shared Constants
==========================================

Single source of truth for the option lists the forms validate against and
the presentation constants the leaderboard and vibe checks use.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Event form options
# ---------------------------------------------------------------------------
ALL_EVENTS = "All Events"

EVENT_CATEGORIES: tuple[str, ...] = (
    "Academic",
    "Career",
    "Cultural",
    "Social",
    "Sports",
    "Workshop",
)

AUDIENCE_OPTIONS: tuple[str, ...] = (
    "Open to all",
    "Undergraduate students",
    "Graduate students",
    "Faculty/Staff",
    "Alumni",
    "Invite Only",
)

USER_TYPES: tuple[str, ...] = ("student", "club_admin", "admin")
EVENT_MANAGER_TYPES: frozenset[str] = frozenset({"admin", "club_admin"})

RSVP_STATUSES: tuple[str, ...] = ("going", "interested", "not_going")


# ---------------------------------------------------------------------------
# Vibe checks
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class VibeOption:
    value: int
    label: str
    emoji: str


VIBE_OPTIONS: tuple[VibeOption, ...] = (
    VibeOption(1, "Boring", "\U0001f629"),  # 😩
    VibeOption(2, "Meh", "\U0001f610"),     # 😐
    VibeOption(3, "Good", "\U0001f60a"),    # 😊
    VibeOption(4, "Great", "\U0001f601"),   # 😁
    VibeOption(5, "Lit", "\U0001f525"),     # 🔥
)

VIBE_BY_VALUE: dict[int, VibeOption] = {v.value: v for v in VIBE_OPTIONS}
DEFAULT_VIBE_EMOJI = "\U0001f60a"
MAX_VIBE_COMMENT_LENGTH = 200


# ---------------------------------------------------------------------------
# Leaderboard presentation
# ---------------------------------------------------------------------------
RANK_TITLES: list[str] = ["Champion", "Runner-up", "3rd Place"]
LEADERBOARD_LIMIT = 5

# Profile points
POINTS_PER_ATTENDED_EVENT = 10
POINTS_PER_VIBE_CHECK = 5
POINTS_PER_PHOTO = 15

# (label, stat key, threshold): one achievement per threshold reached
ACHIEVEMENT_THRESHOLDS: tuple[tuple[str, str, int], ...] = (
    ("First Timer", "events_attended", 1),
    ("Regular", "events_attended", 5),
    ("Social Butterfly", "events_attended", 15),
    ("Critic", "vibe_checks", 1),
    ("Tastemaker", "vibe_checks", 10),
    ("Shutterbug", "photos_shared", 1),
)


# ---------------------------------------------------------------------------
# Display fallbacks
# ---------------------------------------------------------------------------
DATE_TBA = "Date TBA"
TIME_TBA = "Time TBA"
LOCATION_TBA = "Location TBA"
AUDIENCE_DEFAULT = "Open to All"
DESCRIPTION_PLACEHOLDER = "Event description coming soon..."
DESCRIPTION_PREVIEW_LENGTH = 80
