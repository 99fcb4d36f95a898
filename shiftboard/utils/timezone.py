"""
Timezone helpers.

The roster stores naive wall-clock times; these helpers pin them to the
configured restaurant timezone.
"""
import pytz
from datetime import date, datetime, time
from typing import Optional

from shiftboard.config import settings


def get_timezone(name: Optional[str] = None) -> pytz.BaseTzInfo:
    """Return the pytz zone, defaulting to the configured one."""
    return pytz.timezone(name or settings.timezone)


def now(tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """
    Return the current aware datetime in the roster timezone.
    
    Args:
        tz: Zone to use, the configured zone if None
        
    Returns:
        datetime: Current time (timezone aware)
    """
    return datetime.now(tz or get_timezone())


def localize(day: date, wall_clock: str, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """
    Combine a date and an "HH:MM" string into an aware datetime.
    
    Args:
        day: Calendar date
        wall_clock: Time of day as "HH:MM"
        tz: Zone to use, the configured zone if None
        
    Returns:
        datetime: Aware datetime in the given zone
    """
    hours, minutes = (int(part) for part in wall_clock.split(":"))
    naive = datetime.combine(day, time(hours, minutes))
    return (tz or get_timezone()).localize(naive)
