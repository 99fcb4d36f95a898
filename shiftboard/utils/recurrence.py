"""
Recurrence rules for monthly tasks.

A task carries exactly one schedule policy; is_due answers whether the task
falls on a given calendar date. Dates are immutable, so evaluating never
changes the caller's value.
"""
from datetime import date, datetime
from dateutil.relativedelta import relativedelta
from typing import Callable, Dict, Union

from shiftboard.schemas.monthly_task import (
    MonthlyTask,
    WeeklySchedule,
    IntervalSchedule,
    MonthlyDateSchedule,
    MonthlyWeekdaySchedule,
    RandomSchedule,
)
from shiftboard.utils.week import day_of_week


DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_of_month(day: date) -> int:
    """Which occurrence of its weekday a date is within its month (1-based)."""
    return (day.day - 1) // 7 + 1


def last_week_of_month(day: date) -> int:
    """Occurrence number of the month's last date falling on the same weekday."""
    last_day = day + relativedelta(day=31)
    last_same_weekday = last_day - relativedelta(days=(last_day.weekday() - day.weekday()) % 7)
    return week_of_month(last_same_weekday)


def _weekly(schedule: WeeklySchedule, day: date) -> bool:
    return day_of_week(day) in schedule.days_of_week


def _interval(schedule: IntervalSchedule, day: date) -> bool:
    days_since_start = (day - schedule.start_date).days
    return days_since_start >= 0 and days_since_start % schedule.interval_days == 0


def _monthly_date(schedule: MonthlyDateSchedule, day: date) -> bool:
    return day.day in schedule.days_of_month


def _monthly_weekday(schedule: MonthlyWeekdaySchedule, day: date) -> bool:
    weekday = day_of_week(day)
    week = week_of_month(day)
    last_week = last_week_of_month(day)

    for occurrence in schedule.occurrences:
        if occurrence.day != weekday:
            continue
        if occurrence.week >= 0:
            if occurrence.week == week:
                return True
        else:
            week_from_end = last_week - week + 1
            if week_from_end == abs(occurrence.week):
                return True
    return False


def _random(schedule: RandomSchedule, day: date) -> bool:
    return day.isoformat() in {d.isoformat() for d in schedule.scheduled_dates}


_EVALUATORS: Dict[str, Callable[..., bool]] = {
    "weekly": _weekly,
    "interval": _interval,
    "monthly_date": _monthly_date,
    "monthly_weekday": _monthly_weekday,
    "random": _random,
}


def is_due(task: MonthlyTask, day: DateLike) -> bool:
    """
    Decide whether a recurring task is due on a date.

    Args:
        task: Task definition
        day: Calendar date (a datetime is reduced to its date)

    Returns:
        True if the task's schedule selects that date

    Raises:
        ValueError: If the schedule type is unknown
    """
    evaluator = _EVALUATORS.get(task.schedule.type)
    if evaluator is None:
        raise ValueError(f"Unknown schedule type: {task.schedule.type}")
    return evaluator(task.schedule, _as_date(day))
