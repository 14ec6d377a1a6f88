"""
gophergather.bot.core — Bot Instance & Cog Loader
==================================================

:class:`GatherBot` is a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.cfg``) so every Cog can read it.
2. Loads every Cog listed in :data:`EXTENSIONS`.
3. Syncs the slash-command tree on startup (guild-scoped for dev, global
   for production, controlled by the ``DEV_GUILD_ID`` env var).
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands

from gophergather.config import GatherConfig

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "gophergather.bot.cogs.submissions",
]


class GatherBot(commands.Bot):
    """Bot subclass that carries the parsed :class:`GatherConfig`."""

    def __init__(self, cfg: GatherConfig) -> None:
        # Slash commands and modals only; no privileged intents needed.
        intents = discord.Intents.default()

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.campus_name} — {cfg.campus_motto}",
        )
        self.cfg = cfg

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load Cog extensions before connecting.

        A Cog that fails to load is logged and skipped.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    def _sync_guild_id(self) -> int | None:
        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            return int(dev_guild_id)
        return self.cfg.guild_id

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        guild_id = self._sync_guild_id()
        if guild_id:
            guild = discord.Object(id=guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to guild %s", len(synced), guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))
