"""
tests/test_event_service.py — Event lifecycle
==============================================
Creation permissions, moderation, edits, soft delete / restore / purge and
the audit trail that every mutation leaves behind.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from gophergather.database.models import Event, UserType
from gophergather.errors import Forbidden, InvalidInput, NotEligible, NotFound
from gophergather.services import event_service

EVENT = {
    "title": "Resume Review",
    "date": "2099-04-02",
    "start_time": "3:00 PM",
    "end_time": "4:30 PM",
    "location": "Career Center",
    "category": "Career",
}


@pytest.fixture
def club(make_club):
    return make_club("Career Club")


@pytest.fixture
def admin(make_user):
    return make_user("admin@campus.edu", user_type=UserType.ADMIN.value)


@pytest.fixture
def club_admin(make_user, club):
    return make_user("lead@campus.edu", user_type=UserType.CLUB_ADMIN.value, club_id=club.id)


@pytest.fixture
def student(make_user):
    return make_user("kid@campus.edu")


def _actions(engine, event_id):
    return [row.action for row in event_service.audit_trail(engine, event_id)]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class TestCleanEventFields:
    def test_normalises_times_and_strips_markup(self):
        cleaned = event_service.clean_event_fields(
            {**EVENT, "title": "  <b>Resume</b> Review ", "unknown": "ignored"}
        )
        assert cleaned["title"] == "Resume Review"
        assert cleaned["start_time"] == "15:00:00"
        assert cleaned["end_time"] == "16:30:00"
        assert "unknown" not in cleaned

    @pytest.mark.parametrize("missing", ["title", "date", "category"])
    def test_required_fields(self, missing):
        data = {k: v for k, v in EVENT.items() if k != missing}
        with pytest.raises(InvalidInput, match="is required"):
            event_service.clean_event_fields(data)

    def test_bad_date(self):
        with pytest.raises(InvalidInput, match="YYYY-MM-DD"):
            event_service.clean_event_fields({**EVENT, "date": "04/02/2099"})

    @pytest.mark.parametrize("raw", ["20990402", "2099-W14-4", "2099-4-2", "2099-04-02T10:00"])
    def test_only_canonical_dates(self, raw):
        with pytest.raises(InvalidInput, match="YYYY-MM-DD"):
            event_service.clean_event_fields({**EVENT, "date": raw})

    def test_impossible_calendar_date(self):
        with pytest.raises(InvalidInput, match="Invalid date"):
            event_service.clean_event_fields({**EVENT, "date": "2099-02-30"})

    def test_bad_time(self):
        with pytest.raises(InvalidInput, match="start time"):
            event_service.clean_event_fields({**EVENT, "start_time": "after lunch"})

    @pytest.mark.parametrize("field", ["start_time", "end_time"])
    def test_out_of_range_time(self, field):
        with pytest.raises(InvalidInput, match="Invalid"):
            event_service.clean_event_fields({**EVENT, field: "99:99"})

    def test_end_without_start(self):
        data = {k: v for k, v in EVENT.items() if k != "start_time"}
        with pytest.raises(InvalidInput, match="end time needs a start time"):
            event_service.clean_event_fields(data)

    def test_unknown_category_and_audience(self):
        with pytest.raises(InvalidInput, match="Category"):
            event_service.clean_event_fields({**EVENT, "category": "Parties"})
        with pytest.raises(InvalidInput, match="Audience"):
            event_service.clean_event_fields({**EVENT, "audience": "Dogs"})

    def test_link_must_be_http(self):
        with pytest.raises(InvalidInput, match="http"):
            event_service.clean_event_fields({**EVENT, "post_url": "javascript:alert(1)"})

    def test_entities_survive_a_round_trip(self, db_engine, club_admin):
        event = event_service.create_event(
            db_engine, club_admin, {**EVENT, "title": "Fish &amp;lt;3 Chips"}
        )
        assert event.title == "Fish &lt;3 Chips"
        assert event_service.event_to_dict(event, datetime(2026, 1, 1))["title"] == "Fish &lt;3 Chips"

    def test_partial_only_checks_given_fields(self):
        assert event_service.clean_event_fields({"location": "Coffman"}, partial=True) == {
            "location": "Coffman"
        }


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------
class TestCreateEvent:
    def test_club_admin_posts_for_own_club(self, db_engine, club_admin, club):
        event = event_service.create_event(
            db_engine, club_admin, {**EVENT, "club_id": "someone-else"}
        )
        assert event.club_id == club.id
        assert event.status == "approved"
        assert event.created_by == club_admin.id
        assert _actions(db_engine, event.id) == ["create"]

    def test_admin_must_pick_a_club(self, db_engine, admin, club):
        with pytest.raises(InvalidInput, match="select an organization"):
            event_service.create_event(db_engine, admin, EVENT)
        event = event_service.create_event(db_engine, admin, {**EVENT, "club_id": club.id})
        assert event.club_id == club.id

    def test_unknown_club(self, db_engine, admin):
        with pytest.raises(NotFound):
            event_service.create_event(db_engine, admin, {**EVENT, "club_id": "nope"})

    def test_club_admin_without_club(self, db_engine, make_user):
        orphan = make_user("orphan@campus.edu", user_type=UserType.CLUB_ADMIN.value)
        with pytest.raises(InvalidInput, match="not linked"):
            event_service.create_event(db_engine, orphan, EVENT)

    def test_students_are_refused(self, db_engine, student):
        with pytest.raises(Forbidden, match="Not authorized"):
            event_service.create_event(db_engine, student, EVENT)

    def test_student_submission_is_pending(self, db_engine, student):
        event = event_service.submit_event(db_engine, student, EVENT)
        assert event.status == "pending"
        assert event.club_id is None


# ---------------------------------------------------------------------------
# Visibility & listing
# ---------------------------------------------------------------------------
class TestVisibility:
    def test_pending_visible_to_owner_and_admin_only(self, db_engine, student, admin, make_user):
        event = event_service.submit_event(db_engine, student, EVENT)
        stranger = make_user("stranger@campus.edu")

        assert event_service.get_event(db_engine, event.id, student).id == event.id
        assert event_service.get_event(db_engine, event.id, admin).id == event.id
        with pytest.raises(NotFound):
            event_service.get_event(db_engine, event.id, stranger)
        with pytest.raises(NotFound):
            event_service.get_event(db_engine, event.id, None)

    def test_public_listing_buckets(self, db_engine, make_event):
        now = datetime(2026, 3, 10, 14, 30)
        make_event(title="Now", date="2026-03-10", start_time="14:00:00")
        make_event(title="Later", date="2026-03-20", start_time="09:00:00")
        for day in range(1, 9):
            make_event(title=f"Past {day}", date=f"2026-03-0{day}")
        make_event(title="Pending", date="2026-03-20", status="pending")
        make_event(title="Deleted", date="2026-03-20", deleted_at=datetime(2026, 3, 1, tzinfo=UTC))

        listing = event_service.list_public_events(db_engine, now=now)

        assert [e["title"] for e in listing["current"]] == ["Now"]
        assert [e["title"] for e in listing["upcoming"]] == ["Later"]
        assert [e["title"] for e in listing["past"]] == [f"Past {d}" for d in range(8, 2, -1)]
        assert listing["past_total"] == 8
        assert listing["has_more_past"] is True
        assert listing["total"] == 10

    def test_category_filter(self, db_engine, make_event):
        make_event(title="Talk", category="Academic")
        make_event(title="Mixer", category="Social")
        listing = event_service.list_public_events(db_engine, "Academic")
        assert listing["category"] == "Academic"
        assert [e["title"] for e in listing["upcoming"]] == ["Talk"]

    def test_event_to_dict_display_fields(self, make_event):
        event = make_event(
            date="2026-01-05", start_time="19:30:00", end_time=None,
            location=None, audience=None, description="  Free\n food ",
        )
        data = event_service.event_to_dict(event, datetime(2026, 1, 1))
        assert data["timing"] == "upcoming"
        assert data["display_date"] == "Monday, January 5, 2026"
        assert data["display_time"] == "7:30 PM"
        assert data["display_location"] == "Location TBA"
        assert data["display_audience"] == "Open to All"
        assert data["preview"] == "Free food"


# ---------------------------------------------------------------------------
# Moderation & edits
# ---------------------------------------------------------------------------
class TestModeration:
    def test_approve_publishes(self, db_engine, student, admin):
        event = event_service.submit_event(db_engine, student, EVENT)
        event_service.moderate_event(db_engine, admin, event.id, "approve")
        assert event_service.get_event(db_engine, event.id).status == "approved"
        assert _actions(db_engine, event.id) == ["create", "approve"]

    def test_cannot_moderate_twice(self, db_engine, student, admin):
        event = event_service.submit_event(db_engine, student, EVENT)
        event_service.moderate_event(db_engine, admin, event.id, "reject")
        with pytest.raises(NotEligible):
            event_service.moderate_event(db_engine, admin, event.id, "approve")

    def test_club_admin_limited_to_own_club(self, db_engine, student, club_admin, club, make_club):
        other = make_club("Chess Club")
        mine = event_service.submit_event(db_engine, student, {**EVENT, "club_id": club.id})
        theirs = event_service.submit_event(db_engine, student, {**EVENT, "club_id": other.id})

        assert [e.id for e in event_service.list_pending_events(db_engine, club_admin)] == [mine.id]
        event_service.moderate_event(db_engine, club_admin, mine.id, "approve")
        with pytest.raises(Forbidden):
            event_service.moderate_event(db_engine, club_admin, theirs.id, "approve")

    def test_update_records_before_and_after(self, db_engine, club_admin):
        event = event_service.create_event(db_engine, club_admin, EVENT)
        event_service.update_event(db_engine, club_admin, event.id, {"location": "Coffman Union"})

        trail = event_service.audit_trail(db_engine, event.id)
        assert trail[-1].action == "update"
        assert trail[-1].before_snapshot["location"] == "Career Center"
        assert trail[-1].after_snapshot["location"] == "Coffman Union"

    def test_update_rejects_end_without_start(self, db_engine, admin, club):
        event = event_service.create_event(
            db_engine, admin, {**EVENT, "club_id": club.id, "start_time": None, "end_time": None}
        )
        with pytest.raises(InvalidInput):
            event_service.update_event(db_engine, admin, event.id, {"end_time": "5:00 PM"})


# ---------------------------------------------------------------------------
# Soft delete, restore, purge
# ---------------------------------------------------------------------------
class TestDeletion:
    def test_soft_delete_hides_and_restore_returns(self, db_engine, club_admin):
        event = event_service.create_event(db_engine, club_admin, EVENT)

        event_service.soft_delete_event(db_engine, club_admin, event.id)
        assert event_service.list_public_events(db_engine)["total"] == 0
        with pytest.raises(NotEligible):
            event_service.soft_delete_event(db_engine, club_admin, event.id)

        event_service.restore_event(db_engine, club_admin, event.id)
        assert event_service.list_public_events(db_engine)["total"] == 1
        assert _actions(db_engine, event.id) == ["create", "soft_delete", "restore"]

    def test_restore_needs_a_deleted_event(self, db_engine, club_admin):
        event = event_service.create_event(db_engine, club_admin, EVENT)
        with pytest.raises(NotEligible, match="not deleted"):
            event_service.restore_event(db_engine, club_admin, event.id)

    def test_purged_event_cannot_be_restored(self, db_engine, admin, make_event):
        deleted_at = datetime(2026, 1, 1, tzinfo=UTC)
        event = make_event(deleted_at=deleted_at)
        event_service.permanently_delete_event(
            db_engine, admin, event.id, now=deleted_at + timedelta(days=31)
        )
        with pytest.raises(NotFound):
            event_service.restore_event(db_engine, admin, event.id)
        assert _actions(db_engine, event.id) == ["permanent_delete"]

    def test_deleted_listing_countdown(self, db_engine, admin, make_event):
        deleted_at = datetime(2026, 3, 1, tzinfo=UTC)
        make_event(title="Old", deleted_at=deleted_at)
        rows = event_service.list_deleted_events(
            db_engine, admin, now=deleted_at + timedelta(days=12)
        )
        assert rows[0]["days_since_deleted"] == 12
        assert rows[0]["days_left"] == 18
        assert rows[0]["can_purge"] is False

    def test_club_admin_sees_only_own_deleted(self, db_engine, club_admin, club, make_club, make_event):
        other = make_club("Chess Club")
        now = datetime(2026, 3, 1, tzinfo=UTC)
        make_event(title="Ours", club_id=club.id, deleted_at=now)
        make_event(title="Theirs", club_id=other.id, deleted_at=now)
        rows = event_service.list_deleted_events(db_engine, club_admin, now=now)
        assert [r["title"] for r in rows] == ["Ours"]

    def test_purge_waits_for_grace_period(self, db_engine, admin, make_event):
        deleted_at = datetime(2026, 3, 1, tzinfo=UTC)
        event = make_event(deleted_at=deleted_at)

        with pytest.raises(NotEligible, match=r"Can only delete after 30 days \(5 days left\)"):
            event_service.permanently_delete_event(
                db_engine, admin, event.id, now=deleted_at + timedelta(days=25)
            )

        purged = event_service.permanently_delete_event(
            db_engine, admin, event.id, now=deleted_at + timedelta(days=30)
        )
        assert purged.permanently_deleted_at is not None
        with pytest.raises(NotFound):
            event_service.get_event(db_engine, event.id, admin)
        assert _actions(db_engine, event.id) == ["permanent_delete"]

    def test_purge_needs_soft_delete_first(self, db_engine, admin, make_event):
        event = make_event()
        with pytest.raises(NotEligible, match="Only deleted events"):
            event_service.permanently_delete_event(db_engine, admin, event.id)

    def test_purged_row_is_kept(self, db_engine, admin, make_event):
        deleted_at = datetime(2026, 1, 1, tzinfo=UTC)
        event = make_event(deleted_at=deleted_at)
        event_service.permanently_delete_event(
            db_engine, admin, event.id, now=deleted_at + timedelta(days=40)
        )
        with Session(db_engine) as s:
            assert s.get(Event, event.id) is not None
        assert event_service.list_deleted_events(db_engine, admin) == []
