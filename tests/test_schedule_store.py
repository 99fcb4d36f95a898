"""Tests for the weekly roster store."""
import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from datetime import date

from shiftboard.database import Base
from shiftboard.exceptions import ConcurrencyError, ConflictError, InvalidTimeSlotError, ResourceNotFoundError
from shiftboard.models.notification import PassRequestStatus
from shiftboard.models.schedule import ScheduleRecord, ScheduleStatus
from shiftboard.schemas.schedule import ShiftTemplate, TimeSlot
from shiftboard.services import pass_request_rules as rules
from shiftboard.services.change_feed import ChangeFeed
from shiftboard.services.pass_request_service import PassRequestService
from shiftboard.services.schedule_store import ScheduleStore
from tests.conftest import WEEK_ID, actor, fixed_clock, make_shift, make_user, seed_schedule


def template(template_id, start, end, days, role="Phục vụ"):
    return ShiftTemplate(
        id=template_id,
        label=template_id.title(),
        role=role,
        time_slot=TimeSlot(start=start, end=end),
        applicable_days=days,
        min_users=2
    )


class TestReadWrite:
    """Test get and update."""

    def test_get_missing_week(self, test_db):
        store = ScheduleStore(test_db)

        assert store.get("2024-W30") is None
        with pytest.raises(ResourceNotFoundError):
            store.get_or_raise("2024-W30")

    def test_update_creates_and_merges(self, test_db):
        store = ScheduleStore(test_db)
        store.update(WEEK_ID, {"shifts": [make_shift("s1", "07:00", "15:00", ["a"])]})

        saved = store.update(WEEK_ID, {"status": "published"})

        assert saved.status == ScheduleStatus.PUBLISHED
        assert [s.id for s in saved.shifts] == ["s1"]
        assert store.get(WEEK_ID).shifts[0].assigned_users[0].user_id == "a"

    def test_update_rejects_invalid_slot(self, test_db):
        store = ScheduleStore(test_db)

        with pytest.raises(InvalidTimeSlotError):
            store.update(WEEK_ID, {"shifts": [make_shift("night", "22:00", "02:00")]})
        assert store.get(WEEK_ID) is None

    def test_duplicate_assignee_rejected(self, test_db):
        store = ScheduleStore(test_db)
        shift = make_shift("s1", "07:00", "15:00", ["a"]).model_dump()
        shift["assigned_users"].append(shift["assigned_users"][0])

        with pytest.raises(ValueError):
            store.update(WEEK_ID, {"shifts": [shift]})

    def test_get_for_date(self, test_db):
        seed_schedule(test_db, [make_shift("s1", "07:00", "15:00")])

        assert ScheduleStore(test_db).get_for_date(date(2024, 6, 16)).week_id == WEEK_ID


class TestRollover:
    """Test next-week draft generation."""

    def test_generates_sorted_shifts_from_templates(self, test_db):
        store = ScheduleStore(test_db)
        templates = [
            template("evening", "15:00", "22:00", [1, 2]),
            template("morning", "07:00", "15:00", [1, 0]),
        ]

        draft = store.rollover_draft("2024-W23", templates)

        assert draft.week_id == WEEK_ID
        assert draft.status == ScheduleStatus.DRAFT
        assert [s.id for s in draft.shifts] == [
            "shift_2024-06-10_morning",
            "shift_2024-06-10_evening",
            "shift_2024-06-11_evening",
            "shift_2024-06-16_morning",
        ]
        assert all(s.assigned_users == [] for s in draft.shifts)
        assert draft.shifts[0].min_users == 2

    def test_existing_status_is_left_alone(self, test_db):
        store = ScheduleStore(test_db)
        seed_schedule(test_db, [make_shift("s1", "07:00", "15:00", ["a"])])

        result = store.rollover_draft("2024-W23", [template("morning", "07:00", "15:00", [1])])

        assert result.status == ScheduleStatus.PUBLISHED
        assert [s.id for s in result.shifts] == ["s1"]

    def test_statusless_week_becomes_draft_keeping_shifts(self, test_db):
        store = ScheduleStore(test_db)
        store.update(WEEK_ID, {"shifts": [make_shift("s1", "07:00", "15:00", ["a"])]})

        result = store.rollover_draft("2024-W23", [template("morning", "07:00", "15:00", [1])])

        assert result.status == ScheduleStatus.DRAFT
        assert [s.id for s in result.shifts] == ["s1"]

    def test_uses_stored_templates(self, test_db):
        store = ScheduleStore(test_db)
        store.update_shift_templates([template("morning", "07:00", "15:00", [3])])

        draft = store.rollover_draft("2024-W23")

        assert [s.date for s in draft.shifts] == [date(2024, 6, 12)]

    def test_rollover_twice_is_idempotent(self, test_db):
        store = ScheduleStore(test_db)
        templates = [template("morning", "07:00", "15:00", [1, 2])]

        first = store.rollover_draft("2024-W23", templates)
        second = store.rollover_draft("2024-W23", templates)

        assert first == second


class TestAddStaff:

    def test_add_is_idempotent(self, test_db):
        seed_schedule(test_db, [make_shift("s1", "07:00", "15:00", ["a"])])
        store = ScheduleStore(test_db)

        store.add_staff_to_shift(WEEK_ID, "s1", make_user("b", role="Thu ngân"))
        result = store.add_staff_to_shift(WEEK_ID, "s1", make_user("b"))

        users = result.find_shift("s1").assigned_users
        assert [u.user_id for u in users] == ["a", "b"]
        assert users[1].assigned_role == "Thu ngân"

    def test_add_rejects_overlap(self, test_db):
        seed_schedule(test_db, [
            make_shift("s1", "07:00", "15:00", ["a"]),
            make_shift("s2", "14:00", "20:00"),
        ])

        with pytest.raises(ConflictError) as exc_info:
            ScheduleStore(test_db).add_staff_to_shift(WEEK_ID, "s2", make_user("a"))
        assert exc_info.value.conflicting_shift.id == "s1"

    def test_unknown_shift(self, test_db):
        seed_schedule(test_db, [make_shift("s1", "07:00", "15:00")])

        with pytest.raises(ResourceNotFoundError):
            ScheduleStore(test_db).add_staff_to_shift(WEEK_ID, "nope", make_user("a"))


class TestReconciliation:
    """Open requests are re-checked whenever the roster is written."""

    def test_requester_removed_cancels_request(self, test_db):
        seed_schedule(test_db, [make_shift("s1", "07:00", "15:00", ["a"])])
        service = PassRequestService(test_db, clock=fixed_clock())
        request = service.request_pass(make_shift("s1", "07:00", "15:00"), actor("a"))

        ScheduleStore(test_db).update(WEEK_ID, {"shifts": [make_shift("s1", "07:00", "15:00", ["z"])]})

        reloaded = service.get_request(request.id)
        assert reloaded.status == PassRequestStatus.CANCELLED
        assert reloaded.payload.cancellation_reason == rules.REASON_REQUESTER_LEFT

    def test_counterpart_change_cancels_swap(self, test_db):
        seed_schedule(test_db, [
            make_shift("s1", "07:00", "15:00", ["a"]),
            make_shift("s2", "15:00", "22:00", ["b"]),
        ])
        service = PassRequestService(test_db, clock=fixed_clock())
        request = service.request_direct_pass(
            make_shift("s1", "07:00", "15:00"), actor("a"), actor("b"),
            is_swap=True, target_shift=make_shift("s2", "15:00", "22:00")
        )

        ScheduleStore(test_db).update(WEEK_ID, {"shifts": [
            make_shift("s1", "07:00", "15:00", ["a"]),
            make_shift("s2", "15:00", "22:00", ["c"]),
        ]})

        reloaded = service.get_request(request.id)
        assert reloaded.status == PassRequestStatus.CANCELLED
        assert reloaded.payload.cancellation_reason == rules.REASON_COUNTERPART_CHANGED

    def test_claimant_conflict_releases_claim(self, test_db):
        seed_schedule(test_db, [
            make_shift("s1", "07:00", "15:00", ["a"]),
            make_shift("s2", "16:00", "20:00"),
        ])
        service = PassRequestService(test_db, clock=fixed_clock())
        request = service.request_pass(make_shift("s1", "07:00", "15:00"), actor("a"))
        service.accept_pass(request.id, actor("b"))

        ScheduleStore(test_db).update(WEEK_ID, {"shifts": [
            make_shift("s1", "07:00", "15:00", ["a"]),
            make_shift("s2", "10:00", "20:00", ["b"]),
        ]})

        reloaded = service.get_request(request.id)
        assert reloaded.status == PassRequestStatus.PENDING
        assert reloaded.payload.taken_by is None
        assert "b" in reloaded.payload.declined_by

    def test_unrelated_change_keeps_requests(self, test_db):
        seed_schedule(test_db, [make_shift("s1", "07:00", "15:00", ["a"])])
        service = PassRequestService(test_db, clock=fixed_clock())
        request = service.request_pass(make_shift("s1", "07:00", "15:00"), actor("a"))

        ScheduleStore(test_db).update(WEEK_ID, {"status": "proposed"})

        assert service.get_request(request.id).status == PassRequestStatus.PENDING


class TestSubscriptions:
    """Change feed delivery."""

    def test_subscriber_gets_current_value_then_updates(self, test_db):
        feed = ChangeFeed()
        store = ScheduleStore(test_db, feed)
        seen = []

        unsubscribe = store.subscribe(WEEK_ID, seen.append)
        store.update(WEEK_ID, {"shifts": [make_shift("s1", "07:00", "15:00")]})
        unsubscribe()
        store.update(WEEK_ID, {"status": "published"})

        assert seen[0] is None
        assert len(seen) == 2
        assert seen[1].shifts[0].id == "s1"
        assert feed.listener_count(ScheduleStore.feed_key(WEEK_ID)) == 0

    def test_failing_listener_does_not_block_others(self, test_db):
        feed = ChangeFeed()
        seen = []

        def broken(_):
            raise RuntimeError("listener bug")

        feed.subscribe("k", broken)
        feed.subscribe("k", seen.append)
        feed.publish("k", 1)

        assert seen == [1]


class TestConcurrency:
    """Optimistic writes from two sessions."""

    def test_roster_changed_after_read_is_not_overwritten(self, test_db):
        seed_schedule(test_db, [make_shift("s1", "07:00", "15:00")])
        first, second = ScheduleStore(test_db), ScheduleStore(test_db)
        read_before = first.get(WEEK_ID)

        second.add_staff_to_shift(WEEK_ID, "s1", make_user("y"))
        with patch.object(first, "get_or_raise", return_value=read_before):
            with pytest.raises(ConcurrencyError):
                first.add_staff_to_shift(WEEK_ID, "s1", make_user("x"))

        assigned = first.get(WEEK_ID).find_shift("s1").assigned_users
        assert [u.user_id for u in assigned] == ["y"]

    def test_update_checks_given_version(self, test_db):
        store = ScheduleStore(test_db)
        saved = store.update(WEEK_ID, {"shifts": [make_shift("s1", "07:00", "15:00")]})
        assert saved.version == 1
        store.update(WEEK_ID, {"status": "published"})

        with pytest.raises(ConcurrencyError):
            store.update(WEEK_ID, {"status": "draft"}, expected_version=saved.version)

        current = store.get(WEEK_ID)
        assert current.status == ScheduleStatus.PUBLISHED
        assert current.version == 2

    def test_second_stale_writer_loses(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
        Base.metadata.create_all(bind=engine)
        Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        first, second = Session(), Session()
        try:
            ScheduleStore(first).update(WEEK_ID, {"shifts": [make_shift("s1", "07:00", "15:00")]})

            # Both sessions hold version 1
            loaded = first.get(ScheduleRecord, WEEK_ID)
            stale = second.get(ScheduleRecord, WEEK_ID)
            assert loaded.version == stale.version == 1

            ScheduleStore(first).update(WEEK_ID, {"status": "published"})
            with pytest.raises(ConcurrencyError) as exc_info:
                ScheduleStore(second).update(WEEK_ID, {"status": "draft"})

            assert exc_info.value.details["retryable"] is True
            second.expire_all()
            assert ScheduleStore(second).get(WEEK_ID).status == ScheduleStatus.PUBLISHED
        finally:
            first.close()
            second.close()
            engine.dispose()


class TestAvailability:

    def test_saved_slots_are_merged(self, test_db):
        store = ScheduleStore(test_db)

        saved = store.save_availability(actor("a"), date(2024, 6, 10), [
            TimeSlot(start="10:00", end="12:00"),
            TimeSlot(start="08:00", end="10:00"),
            TimeSlot(start="22:00", end="01:00"),
        ])

        assert saved.available_slots == [TimeSlot(start="08:00", end="12:00")]
        assert [a.user_id for a in store.get_availability_for_week(WEEK_ID)] == ["a"]
        assert store.get_availability_for_date(date(2024, 6, 11)) == []

    def test_resubmitting_replaces(self, test_db):
        store = ScheduleStore(test_db)
        store.save_availability(actor("a"), date(2024, 6, 10), [TimeSlot(start="08:00", end="10:00")])

        store.save_availability(actor("a"), date(2024, 6, 10), [TimeSlot(start="14:00", end="18:00")])

        records = store.get_availability_for_date(date(2024, 6, 10))
        assert len(records) == 1
        assert records[0].available_slots == [TimeSlot(start="14:00", end="18:00")]
