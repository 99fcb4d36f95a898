"""
Time slot arithmetic: conflict detection and availability merging.

All times are same-day "HH:MM" strings converted to fractional hours
("08:30" -> 8.5). Slots whose end is not after their start (overnight
shifts included) are not supported.
"""
from typing import Iterable, List, Optional, Sequence, Tuple

from shiftboard.exceptions import InvalidTimeSlotError
from shiftboard.schemas.schedule import AssignedShift, Availability, TimeSlot


# Gap (in hours) under which two availability ranges count as touching
MERGE_EPSILON = 1e-9


def parse_time(value: str) -> float:
    """Parse "HH:MM" into hours, e.g. "08:30" -> 8.5."""
    hours, minutes = value.split(":")
    return int(hours) + int(minutes) / 60


def is_valid_slot(slot: TimeSlot) -> bool:
    """A slot is valid when it ends strictly after it starts."""
    return parse_time(slot.end) > parse_time(slot.start)


def slot_bounds(slot: TimeSlot) -> Tuple[float, float]:
    """
    Return (start, end) in hours.
    
    Raises:
        InvalidTimeSlotError: If end <= start
    """
    start = parse_time(slot.start)
    end = parse_time(slot.end)
    if end <= start:
        raise InvalidTimeSlotError(slot.start, slot.end)
    return start, end


def ensure_valid_slot(slot: TimeSlot) -> None:
    """Raise InvalidTimeSlotError for an empty or overnight slot."""
    slot_bounds(slot)


def find_conflict(
    user_id: str,
    candidate: AssignedShift,
    shifts_on_same_date: Sequence[AssignedShift]
) -> Optional[AssignedShift]:
    """
    Find the first shift on the candidate's date that would double-book a user.
    
    Ranges are half-open, so a shift ending at 12:00 does not conflict with
    one starting at 12:00. The candidate itself is never reported.
    
    Args:
        user_id: User being placed on the candidate shift
        candidate: Shift the user would take
        shifts_on_same_date: Shifts scheduled that day
        
    Returns:
        The first overlapping shift the user is already on, or None
    """
    start_a, end_a = slot_bounds(candidate.time_slot)
    
    for shift in shifts_on_same_date:
        if shift.id == candidate.id or shift.date != candidate.date:
            continue
        if not shift.has_user(user_id):
            continue
        
        start_b, end_b = slot_bounds(shift.time_slot)
        if start_a < end_b and start_b < end_a:
            return shift
    
    return None


def merge_slots(slots: Iterable[TimeSlot]) -> List[TimeSlot]:
    """
    Merge overlapping or touching ranges into maximal non-overlapping runs.
    
    Invalid slots (end <= start) are dropped.
    
    Returns:
        Merged slots sorted by start
    """
    valid = sorted(
        ((parse_time(slot.start), parse_time(slot.end), slot) for slot in slots if is_valid_slot(slot)),
        key=lambda item: (item[0], item[1])
    )
    
    merged: List[List] = []
    for start, end, slot in valid:
        if merged and start <= merged[-1][1] + MERGE_EPSILON:
            if end > merged[-1][1]:
                merged[-1][1] = end
                merged[-1][3] = slot.end
            continue
        merged.append([start, end, slot.start, slot.end])
    
    return [TimeSlot(start=run[2], end=run[3]) for run in merged]


def covers(merged_slots: Iterable[TimeSlot], candidate: TimeSlot) -> bool:
    """True iff one slot fully contains the candidate range."""
    start, end = slot_bounds(candidate)
    for slot in merged_slots:
        if not is_valid_slot(slot):
            continue
        slot_start, slot_end = slot_bounds(slot)
        if slot_start <= start and slot_end >= end:
            return True
    return False


def calculate_total_hours(slots: Iterable[TimeSlot]) -> float:
    """Sum slot durations in hours; invalid slots count as zero."""
    total = 0.0
    for slot in slots:
        start = parse_time(slot.start)
        end = parse_time(slot.end)
        if end <= start:
            continue
        total += end - start
    return total


def is_user_available(
    user_id: str,
    shift_slot: TimeSlot,
    daily_availability: Iterable[Availability]
) -> bool:
    """
    Check whether a user's submitted availability covers a whole shift.
    
    Returns:
        False when the user registered nothing for the day
    """
    for availability in daily_availability:
        if availability.user_id == user_id:
            return covers(merge_slots(availability.available_slots), shift_slot)
    return False


def contains_time(slot: TimeSlot, wall_clock: str) -> bool:
    """True iff "HH:MM" falls inside the slot, both ends included."""
    start, end = slot_bounds(slot)
    return start <= parse_time(wall_clock) <= end
