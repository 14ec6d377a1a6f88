"""
gophergather.config — YAML Configuration Loader
================================================

Reads ``config.yaml`` for the soft, non-secret settings (campus identity,
session lengths, soft-delete grace period, bot prefix).  Secrets such as
``DATABASE_URL`` and ``JWT_SECRET`` stay in the environment.

Usage::

    from gophergather.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.campus_name)           # "Gopher Gatherings"
    print(cfg.soft_delete_grace_days)  # 30
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GatherConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    campus_name: str
    campus_motto: str

    # Dashboard
    dashboard_port: int

    # Events
    soft_delete_grace_days: int = 30
    default_event_duration_hours: int = 2
    past_events_page_size: int = 6

    # Sessions
    default_session_days: int = 3
    remember_me_session_days: int = 14

    # Discord
    bot_prefix: str = "!"
    guild_id: int | None = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> GatherConfig:
    """Read *path* and return a :class:`GatherConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to
        ``$GATHER_CONFIG`` or ``config.yaml`` in the working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    if path is None:
        path = os.getenv("GATHER_CONFIG", "config.yaml")
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return GatherConfig(
        campus_name=raw["campus_name"],
        campus_motto=raw["campus_motto"],
        dashboard_port=int(raw["dashboard_port"]),
        soft_delete_grace_days=int(raw.get("soft_delete_grace_days", 30)),
        default_event_duration_hours=int(raw.get("default_event_duration_hours", 2)),
        past_events_page_size=int(raw.get("past_events_page_size", 6)),
        default_session_days=int(raw.get("default_session_days", 3)),
        remember_me_session_days=int(raw.get("remember_me_session_days", 14)),
        bot_prefix=raw.get("bot_prefix", "!"),
        guild_id=int(raw["guild_id"]) if raw.get("guild_id") else None,
    )
