"""
tests/test_bot_submissions.py — /submit-event modal
====================================================
The modal is built and submitted against mocked interactions; nothing
talks to Discord.
"""

from __future__ import annotations

import asyncio
import logging
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import discord

from gophergather.bot.cogs import submissions
from gophergather.bot.cogs.submissions import (
    ERROR_MESSAGE,
    SUCCESS_MESSAGE,
    EventSubmissionModal,
    Submissions,
    build_submission_modal,
    send_error_reply,
    submission_fields,
)


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


def _interaction(*, done: bool = False) -> MagicMock:
    interaction = MagicMock()
    interaction.response.is_done = MagicMock(return_value=done)
    interaction.response.send_message = AsyncMock()
    interaction.response.send_modal = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


def _field(value):
    return SimpleNamespace(value=value)


class TestModalLayout:
    def test_fields_in_order(self):
        async def _inner():
            modal = build_submission_modal()
            assert modal.title == "Submit a New Campus Event"
            assert modal.custom_id == "eventSubmissionModal"
            assert [c.custom_id for c in modal.children] == [
                "eventTitle", "eventDate", "eventLocation", "eventRsvpUrl",
            ]
            assert [c.required for c in modal.children] == [True, True, True, False]
            assert modal.event_date.label == "Date (YYYY-MM-DD)"
            assert modal.event_rsvp_url.label == "RSVP or More Info Link (Optional)"
        run_async(_inner())


class TestSubmissionFields:
    def test_values_are_trimmed(self):
        modal = SimpleNamespace(
            event_title=_field("  Pizza Night "),
            event_date=_field("2026-04-01"),
            event_location=_field("CMU, Great Hall"),
            event_rsvp_url=_field("https://example.com/rsvp"),
        )
        assert submission_fields(modal) == {
            "title": "Pizza Night",
            "date": "2026-04-01",
            "location": "CMU, Great Hall",
            "rsvp_url": "https://example.com/rsvp",
        }

    def test_blank_link_is_none(self):
        modal = SimpleNamespace(
            event_title=_field("Pizza Night"),
            event_date=_field("2026-04-01"),
            event_location=_field("CMU"),
            event_rsvp_url=_field(""),
        )
        assert submission_fields(modal)["rsvp_url"] is None


class TestModalSubmit:
    def test_logs_and_replies_ephemerally(self, caplog):
        interaction = _interaction()

        async def _inner():
            modal = EventSubmissionModal()
            with caplog.at_level(logging.INFO, logger=submissions.__name__):
                await modal.on_submit(interaction)

        run_async(_inner())
        interaction.response.send_message.assert_awaited_once_with(
            SUCCESS_MESSAGE, ephemeral=True
        )
        assert any("Event Submitted" in r.getMessage() for r in caplog.records)

    def test_error_uses_reply_when_unanswered(self):
        interaction = _interaction(done=False)
        run_async(send_error_reply(interaction))
        interaction.response.send_message.assert_awaited_once_with(ERROR_MESSAGE, ephemeral=True)
        interaction.followup.send.assert_not_awaited()

    def test_error_uses_followup_when_answered(self):
        interaction = _interaction(done=True)
        run_async(send_error_reply(interaction))
        interaction.followup.send.assert_awaited_once_with(ERROR_MESSAGE, ephemeral=True)
        interaction.response.send_message.assert_not_awaited()


class TestSubmitEventCommand:
    def test_command_metadata(self):
        cog = Submissions(MagicMock())
        assert cog.submit_event.name == "submit-event"
        assert cog.submit_event.description == "Opens a form to submit a new campus event."

    def test_command_opens_modal(self):
        cog = Submissions(MagicMock())
        interaction = _interaction()
        run_async(cog.submit_event.callback(cog, interaction))

        interaction.response.send_modal.assert_awaited_once()
        sent = interaction.response.send_modal.await_args.args[0]
        assert isinstance(sent, EventSubmissionModal)

    def test_command_error_replies(self):
        cog = Submissions(MagicMock())
        interaction = _interaction(done=True)
        error = discord.app_commands.AppCommandError("boom")
        run_async(cog.cog_app_command_error(interaction, error))
        interaction.followup.send.assert_awaited_once_with(ERROR_MESSAGE, ephemeral=True)

    def test_setup_registers_cog(self):
        bot = MagicMock()
        bot.add_cog = AsyncMock()
        run_async(submissions.setup(bot))
        assert isinstance(bot.add_cog.await_args.args[0], Submissions)


class TestGatherBot:
    def _bot(self, test_config):
        from gophergather.bot.core import GatherBot
        return GatherBot(cfg=test_config)

    def test_dev_guild_env_wins(self, test_config):
        bot = self._bot(test_config)
        with patch.dict(os.environ, {"DEV_GUILD_ID": "1234"}):
            assert bot._sync_guild_id() == 1234
        with patch.dict(os.environ, {"DEV_GUILD_ID": ""}):
            assert bot._sync_guild_id() is None

    def test_setup_hook_loads_extensions(self, test_config):
        from gophergather.bot.core import EXTENSIONS

        bot = self._bot(test_config)
        with patch.object(bot, "load_extension", new=AsyncMock()) as load:
            run_async(bot.setup_hook())
        assert [c.args[0] for c in load.await_args_list] == EXTENSIONS
