"""
GopherGather — Campus Event Discovery & RSVP
=============================================
Lists campus events, lets clubs publish and moderate them, collects RSVPs
and "vibe check" reactions, and turns attendance into a light-weight
leaderboard.  A tiny Discord bot offers a ``/submit-event`` form.

Package layout::

    gophergather/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Categories, audiences, vibe options, badges
    ├── errors.py          # GatherError taxonomy (code + HTTP status)
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default clubs
    ├── engine/
    │   ├── schedule.py    # Past / current / upcoming classification
    │   └── text.py        # Sanitizing + display helpers
    ├── services/
    │   ├── auth_service.py      # Accounts, sessions, password reset
    │   ├── event_service.py     # Create, moderate, soft delete, restore
    │   ├── rsvp_service.py      # RSVPs
    │   ├── vibe_service.py      # Vibe checks + stats
    │   ├── leaderboard_service.py
    │   ├── profile_service.py
    │   ├── admin_service.py     # Club admin grants, clubs
    │   └── upload_service.py    # Event images + avatars on disk
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader
    │   └── cogs/
    │       └── submissions.py  # /submit-event modal
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Sign-up / sign-in / sessions
        └── routes/        # Events, vibe checks, profile, admin
"""

__version__ = "0.1.0"
