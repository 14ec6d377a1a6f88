"""
gophergather.bot.__main__ — ``python -m gophergather.bot``
===========================================================

Reads ``DISCORD_TOKEN`` from the environment (``.env`` is honoured), loads
``config.yaml`` and runs :class:`~gophergather.bot.core.GatherBot` until
interrupted.  The bot never opens a database connection: modal submissions
are only logged.
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from gophergather.bot.core import GatherBot
from gophergather.config import load_config

logger = logging.getLogger("gophergather.bot")

_PLACEHOLDER_TOKEN = "your-discord-bot-token-here"


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def _discord_token() -> str | None:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token or token == _PLACEHOLDER_TOKEN:
        return None
    return token


def main() -> None:
    _configure_logging()
    load_dotenv()

    token = _discord_token()
    if token is None:
        logger.critical("DISCORD_TOKEN is missing; add the bot token to .env")
        sys.exit(1)

    cfg = load_config()
    bot = GatherBot(cfg=cfg)
    logger.info("Starting submission bot for %s", cfg.campus_name)

    try:
        # discord.py would install its own handler; basicConfig already did.
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Interrupted, bot stopped")


if __name__ == "__main__":
    main()
