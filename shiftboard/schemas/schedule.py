"""Roster document schemas."""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import date

from shiftboard.models.schedule import ScheduleStatus


TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TimeSlot(BaseModel):
    """Same-day wall-clock range, "HH:MM" strings."""
    start: str = Field(pattern=TIME_PATTERN)
    end: str = Field(pattern=TIME_PATTERN)


class AssignedUser(BaseModel):
    user_id: str
    user_name: str
    assigned_role: Optional[str] = None


class AssignedShift(BaseModel):
    """A single scheduled work block and the users assigned to it."""
    id: str
    template_id: str
    date: date
    label: str
    role: str
    time_slot: TimeSlot
    min_users: int = 0
    assigned_users: List[AssignedUser] = []
    
    @field_validator("assigned_users")
    @classmethod
    def user_ids_unique(cls, users: List[AssignedUser]) -> List[AssignedUser]:
        seen = set()
        for user in users:
            if user.user_id in seen:
                raise ValueError(f"User {user.user_id} is assigned to the shift more than once")
            seen.add(user.user_id)
        return users
    
    def has_user(self, user_id: str) -> bool:
        return any(u.user_id == user_id for u in self.assigned_users)
    
    def find_user(self, user_id: str) -> Optional[AssignedUser]:
        for user in self.assigned_users:
            if user.user_id == user_id:
                return user
        return None


class ShiftTemplate(BaseModel):
    """Recurring shift definition rolled into each new week's draft."""
    id: str
    label: str
    role: str
    time_slot: TimeSlot
    # 0 = Sunday ... 6 = Saturday
    applicable_days: List[int] = []
    min_users: int = 0
    
    @field_validator("applicable_days")
    @classmethod
    def days_in_range(cls, days: List[int]) -> List[int]:
        for day in days:
            if not 0 <= day <= 6:
                raise ValueError(f"Day of week must be between 0 and 6, got {day}")
        return days


class Schedule(BaseModel):
    """Weekly roster aggregate."""
    week_id: str
    status: Optional[ScheduleStatus] = None
    shifts: List[AssignedShift] = []
    # Stored document version this snapshot was read at
    version: Optional[int] = None
    
    def find_shift(self, shift_id: str) -> Optional[AssignedShift]:
        for shift in self.shifts:
            if shift.id == shift_id:
                return shift
        return None
    
    def shifts_on(self, day: date) -> List[AssignedShift]:
        return [s for s in self.shifts if s.date == day]


class Availability(BaseModel):
    user_id: str
    user_name: str
    date: date
    available_slots: List[TimeSlot] = []
