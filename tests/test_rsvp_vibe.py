"""
tests/test_rsvp_vibe.py — RSVPs and vibe checks
================================================
"""

from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

import pytest

from gophergather.database.models import UserType
from gophergather.errors import Forbidden, InvalidInput, NotEligible, NotFound
from gophergather.services import rsvp_service, vibe_service


# ===========================================================================
# RSVPs
# ===========================================================================
class TestRsvp:
    def test_second_rsvp_overwrites_first(self, db_engine, make_user, make_event):
        user = make_user()
        event = make_event()

        rsvp_service.set_rsvp(db_engine, user, event.id, "interested")
        rsvp_service.set_rsvp(db_engine, user, event.id, "going")

        assert rsvp_service.my_rsvp(db_engine, user, event.id) == "going"
        assert rsvp_service.rsvp_counts(db_engine, event.id) == {
            "going": 1, "interested": 0, "not_going": 0,
        }

    def test_going_count_ignores_other_statuses(self, db_engine, make_user, make_event):
        event = make_event()
        for status in ("going", "going", "interested", "not_going"):
            rsvp_service.set_rsvp(db_engine, make_user(), event.id, status)
        assert rsvp_service.going_count(db_engine, event.id) == 2

    def test_unknown_status(self, db_engine, make_user, make_event):
        with pytest.raises(InvalidInput):
            rsvp_service.set_rsvp(db_engine, make_user(), make_event().id, "maybe")

    def test_ended_event(self, db_engine, make_user, make_event):
        event = make_event(date="2026-03-01", start_time="18:00:00")
        with pytest.raises(NotEligible, match="already ended"):
            rsvp_service.set_rsvp(
                db_engine, make_user(), event.id, now=datetime(2026, 3, 2, 9, 0)
            )

    def test_non_public_event(self, db_engine, make_user, make_event):
        event = make_event(status="pending")
        with pytest.raises(NotFound):
            rsvp_service.set_rsvp(db_engine, make_user(), event.id)

    def test_clear(self, db_engine, make_user, make_event):
        user, event = make_user(), make_event()
        rsvp_service.set_rsvp(db_engine, user, event.id)
        assert rsvp_service.clear_rsvp(db_engine, user, event.id) is True
        assert rsvp_service.clear_rsvp(db_engine, user, event.id) is False
        assert rsvp_service.my_rsvp(db_engine, user, event.id) is None

    def test_anonymous_has_no_rsvp(self, db_engine, make_event):
        assert rsvp_service.my_rsvp(db_engine, None, make_event().id) is None


# ===========================================================================
# Vibe checks
# ===========================================================================
def _check(rating, comment=None):
    return SimpleNamespace(vibe_rating=rating, comment=comment)


class TestVibeStats:
    def test_empty(self):
        stats = vibe_service.vibe_stats([])
        assert stats["average"] is None
        assert stats["total"] == 0
        assert [d["value"] for d in stats["distribution"]] == [5, 4, 3, 2, 1]
        assert all(d["percentage"] == 0 for d in stats["distribution"])

    def test_average_rounds_half_up(self):
        # (5 + 4 + 4 + 4) / 4 = 4.25 → 4.3
        stats = vibe_service.vibe_stats([_check(5), _check(4), _check(4), _check(4)])
        assert stats["average"] == 4.3

    def test_distribution(self):
        stats = vibe_service.vibe_stats([_check(5), _check(5), _check(1), _check(3)])
        by_value = {d["value"]: d for d in stats["distribution"]}
        assert by_value[5]["count"] == 2
        assert by_value[5]["percentage"] == 50
        assert by_value[5]["label"] == "Lit"
        assert by_value[2]["count"] == 0

    def test_visible_comments_skip_blank(self):
        checks = [_check(5, "great"), _check(4, "   "), _check(3, None)]
        assert [c.comment for c in vibe_service.visible_comments(checks)] == ["great"]


class TestVibeChecks:
    def test_submit_and_list(self, db_engine, make_user, make_event):
        user = make_user("goldy@campus.edu")
        event = make_event()

        vibe_service.submit_vibe_check(db_engine, user, event.id, 5, "<i>So</i> fun")
        vibe_service.submit_vibe_check(db_engine, user, event.id, 2)

        checks = vibe_service.list_vibe_checks(db_engine, event.id)
        assert [c.vibe_rating for c in checks] == [2, 5]
        assert checks[1].comment == "So fun"
        assert checks[1].vibe_emoji == "\U0001f525"
        assert checks[1].user_name == "Goldy"
        assert checks[0].comment is None

    def test_rating_out_of_range(self, db_engine, make_user, make_event):
        with pytest.raises(InvalidInput):
            vibe_service.submit_vibe_check(db_engine, make_user(), make_event().id, 6)

    def test_comment_too_long(self, db_engine, make_user, make_event):
        with pytest.raises(InvalidInput, match="200 characters"):
            vibe_service.submit_vibe_check(db_engine, make_user(), make_event().id, 3, "x" * 201)

    def test_full_name_is_used(self, make_user):
        user = make_user()
        user.full_name = "ada lovelace"
        assert vibe_service.vibe_user_name(user) == "Ada lovelace"

    def test_owner_can_delete_comment(self, db_engine, make_user, make_event):
        user = make_user()
        check = vibe_service.submit_vibe_check(db_engine, user, make_event().id, 4, "nice")
        cleared = vibe_service.delete_vibe_comment(db_engine, user, check.id)
        assert cleared.comment is None
        assert cleared.vibe_rating == 4

    def test_stranger_cannot_delete(self, db_engine, make_user, make_event):
        check = vibe_service.submit_vibe_check(db_engine, make_user(), make_event().id, 4, "nice")
        with pytest.raises(Forbidden, match="your own comments"):
            vibe_service.delete_vibe_comment(db_engine, make_user(), check.id)

    def test_manager_can_delete_any(self, db_engine, make_user, make_event):
        check = vibe_service.submit_vibe_check(db_engine, make_user(), make_event().id, 1, "meh")
        admin = make_user("boss@campus.edu", user_type=UserType.ADMIN.value)
        assert vibe_service.delete_vibe_comment(db_engine, admin, check.id).comment is None

    def test_missing_check(self, db_engine, make_user):
        with pytest.raises(NotFound):
            vibe_service.delete_vibe_comment(db_engine, make_user(), 999)
