"""Tests for recurring task due-date evaluation."""
import pytest
from hypothesis import given, strategies as st, settings
from datetime import date, datetime, timedelta

from shiftboard.schemas.monthly_task import MonthlyTask
from shiftboard.utils.recurrence import is_due, last_week_of_month, week_of_month


def task(schedule):
    return MonthlyTask.model_validate({
        "id": "t1",
        "name": "Clean the ice machine",
        "applies_to_role": "Pha chế",
        "schedule": schedule,
    })


class TestWeekOfMonth:
    """Test occurrence counting within a month."""

    def test_first_seven_days_are_week_one(self):
        assert week_of_month(date(2024, 6, 1)) == 1
        assert week_of_month(date(2024, 6, 7)) == 1
        assert week_of_month(date(2024, 6, 8)) == 2
        assert week_of_month(date(2024, 6, 29)) == 5

    def test_last_week_depends_on_weekday(self):
        # June 2024: the 29th is the fifth Saturday, the 28th the fourth Friday
        assert last_week_of_month(date(2024, 6, 1)) == 5
        assert last_week_of_month(date(2024, 6, 7)) == 4


class TestWeekly:

    def test_matches_listed_days(self):
        weekly = task({"type": "weekly", "days_of_week": [1, 3]})

        assert is_due(weekly, date(2024, 6, 10)) is True   # Monday
        assert is_due(weekly, date(2024, 6, 12)) is True   # Wednesday
        assert is_due(weekly, date(2024, 6, 9)) is False   # Sunday

    def test_sunday_is_zero(self):
        assert is_due(task({"type": "weekly", "days_of_week": [0]}), date(2024, 6, 9)) is True


class TestInterval:
    """Interval recurrence from a start date."""

    def test_every_third_day(self):
        interval = task({"type": "interval", "start_date": "2024-01-01", "interval_days": 3})

        for due in (date(2024, 1, 1), date(2024, 1, 4), date(2024, 1, 7)):
            assert is_due(interval, due) is True
        for not_due in (date(2024, 1, 2), date(2024, 1, 3), date(2023, 12, 31), date(2023, 12, 29)):
            assert is_due(interval, not_due) is False

    def test_datetime_is_reduced_to_date(self):
        interval = task({"type": "interval", "start_date": "2024-01-01", "interval_days": 3})

        assert is_due(interval, datetime(2024, 1, 4, 23, 59)) is True

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            task({"type": "interval", "start_date": "2024-01-01", "interval_days": 0})

    @pytest.mark.property
    @settings(max_examples=100)
    @given(
        offset=st.integers(min_value=-400, max_value=400),
        interval_days=st.integers(min_value=1, max_value=30),
    )
    def test_due_iff_non_negative_multiple(self, offset, interval_days):
        start = date(2024, 1, 1)
        interval = task({"type": "interval", "start_date": start.isoformat(), "interval_days": interval_days})

        expected = offset >= 0 and offset % interval_days == 0
        assert is_due(interval, start + timedelta(days=offset)) is expected


class TestMonthlyDate:

    def test_matches_day_numbers(self):
        monthly = task({"type": "monthly_date", "days_of_month": [1, 15]})

        assert is_due(monthly, date(2024, 6, 15)) is True
        assert is_due(monthly, date(2024, 6, 16)) is False

    def test_day_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            task({"type": "monthly_date", "days_of_month": [32]})


class TestMonthlyWeekday:
    """Monthly n-th weekday recurrence."""

    def test_last_friday_in_leap_and_common_february(self):
        last_friday = task({"type": "monthly_weekday", "occurrences": [{"week": -1, "day": 5}]})

        assert is_due(last_friday, date(2024, 2, 23)) is True
        assert is_due(last_friday, date(2024, 2, 16)) is False
        assert is_due(last_friday, date(2023, 2, 24)) is True
        assert is_due(last_friday, date(2023, 2, 17)) is False

    def test_second_tuesday(self):
        second_tuesday = task({"type": "monthly_weekday", "occurrences": [{"week": 2, "day": 2}]})

        assert is_due(second_tuesday, date(2024, 6, 11)) is True
        assert is_due(second_tuesday, date(2024, 6, 4)) is False

    def test_second_to_last(self):
        second_last_monday = task({"type": "monthly_weekday", "occurrences": [{"week": -2, "day": 1}]})

        # Mondays of June 2024: 3, 10, 17, 24
        assert is_due(second_last_monday, date(2024, 6, 17)) is True
        assert is_due(second_last_monday, date(2024, 6, 24)) is False

    @pytest.mark.property
    @settings(max_examples=100)
    @given(st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31)))
    def test_last_occurrence_has_no_same_weekday_after_it(self, day):
        weekday = (day.weekday() + 1) % 7
        last = task({"type": "monthly_weekday", "occurrences": [{"week": -1, "day": weekday}]})

        is_last = (day + timedelta(days=7)).month != day.month
        assert is_due(last, day) is is_last


class TestRandom:

    def test_explicit_dates(self):
        random_task = task({"type": "random", "scheduled_dates": ["2024-06-03", "2024-06-21"]})

        assert is_due(random_task, date(2024, 6, 21)) is True
        assert is_due(random_task, date(2024, 6, 22)) is False


class TestPurity:

    def test_argument_is_not_changed(self):
        day = date(2024, 2, 23)
        original = day.isoformat()
        last_friday = task({"type": "monthly_weekday", "occurrences": [{"week": -1, "day": 5}]})

        for _ in range(3):
            assert is_due(last_friday, day) is True
        assert day.isoformat() == original

    def test_unknown_schedule_rejected_at_validation(self):
        with pytest.raises(ValueError):
            task({"type": "yearly", "month": 1})
