"""
gophergather.bot.cogs.submissions — Event Submission Modal
===========================================================

``/submit-event`` pops up a four-field form.  Submitted values are logged
for the events team to pick up; nothing is written to the database.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import discord
from discord import app_commands
from discord.ext import commands

if TYPE_CHECKING:
    from gophergather.bot.core import GatherBot

logger = logging.getLogger(__name__)

MODAL_ID = "eventSubmissionModal"
MODAL_TITLE = "Submit a New Campus Event"
SUCCESS_MESSAGE = "Your event has been submitted successfully!"
ERROR_MESSAGE = "There was an error while executing this command!"


class EventSubmissionModal(discord.ui.Modal, title=MODAL_TITLE):
    """Title, date and location are required; the link is optional."""

    event_title = discord.ui.TextInput(
        label="what is the event's title? ",
        custom_id="eventTitle",
        style=discord.TextStyle.short,
        required=True,
    )
    event_date = discord.ui.TextInput(
        label="Date (YYYY-MM-DD)",
        custom_id="eventDate",
        style=discord.TextStyle.short,
        required=True,
    )
    event_location = discord.ui.TextInput(
        label="Location (CMU, Great Hall)",
        custom_id="eventLocation",
        style=discord.TextStyle.short,
        required=True,
    )
    event_rsvp_url = discord.ui.TextInput(
        label="RSVP or More Info Link (Optional)",
        custom_id="eventRsvpUrl",
        style=discord.TextStyle.short,
        required=False,
    )

    def __init__(self) -> None:
        super().__init__(custom_id=MODAL_ID)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        logger.info("Event Submitted: %s", submission_fields(self))
        await interaction.response.send_message(SUCCESS_MESSAGE, ephemeral=True)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        logger.error("Event submission modal failed", exc_info=error)
        await send_error_reply(interaction)


def build_submission_modal() -> EventSubmissionModal:
    """Must be called inside a running event loop (discord.py views need one)."""
    return EventSubmissionModal()


def submission_fields(modal: Any) -> dict[str, str | None]:
    """Pull the submitted values off *modal*; a blank link becomes ``None``."""
    rsvp_url = (modal.event_rsvp_url.value or "").strip()
    return {
        "title": (modal.event_title.value or "").strip(),
        "date": (modal.event_date.value or "").strip(),
        "location": (modal.event_location.value or "").strip(),
        "rsvp_url": rsvp_url or None,
    }


async def send_error_reply(interaction: discord.Interaction) -> None:
    """Ephemeral error notice; a follow-up if the interaction was already answered."""
    if interaction.response.is_done():
        await interaction.followup.send(ERROR_MESSAGE, ephemeral=True)
    else:
        await interaction.response.send_message(ERROR_MESSAGE, ephemeral=True)


class Submissions(commands.Cog, name="Submissions"):
    """Campus event submission form."""

    def __init__(self, bot: GatherBot) -> None:
        self.bot = bot

    @app_commands.command(
        name="submit-event",
        description="Opens a form to submit a new campus event.",
    )
    async def submit_event(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(build_submission_modal())

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        logger.error("Command /%s failed", getattr(interaction.command, "name", "?"),
                     exc_info=error)
        await send_error_reply(interaction)


async def setup(bot: GatherBot) -> None:
    await bot.add_cog(Submissions(bot))
