"""ISO week helpers for schedule document ids."""
from datetime import date, timedelta
from typing import List, Tuple
import re


WEEK_ID_PATTERN = re.compile(r"^(\d{4})-W(\d{1,2})$")


def week_id_for(day: date) -> str:
    """
    Build the schedule id of the ISO week containing a date.
    
    The week number is not zero-padded, e.g. "2024-W9".
    """
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week}"


def parse_week_id(week_id: str) -> Tuple[int, int]:
    """
    Split a week id into (iso_year, iso_week).
    
    Raises:
        ValueError: If the id is malformed
    """
    match = WEEK_ID_PATTERN.match(week_id or "")
    if not match:
        raise ValueError(f"Invalid week id: {week_id!r}")
    return int(match.group(1)), int(match.group(2))


def week_dates(week_id: str) -> List[date]:
    """Return the seven dates of a week, Monday first."""
    iso_year, iso_week = parse_week_id(week_id)
    monday = date.fromisocalendar(iso_year, iso_week, 1)
    return [monday + timedelta(days=offset) for offset in range(7)]


def next_week_id(week_id: str) -> str:
    """Return the id of the week after the given one."""
    monday = week_dates(week_id)[0]
    return week_id_for(monday + timedelta(days=7))


def day_of_week(day: date) -> int:
    """Day of week with Sunday = 0 ... Saturday = 6."""
    return (day.weekday() + 1) % 7
