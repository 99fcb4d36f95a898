"""Recurring (monthly) task schemas."""
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Union, Literal, Annotated
from datetime import date, datetime

from shiftboard.schemas.schedule import AssignedUser, TIME_PATTERN
from shiftboard.schemas.pass_request import SimpleUser


class WeeklySchedule(BaseModel):
    type: Literal["weekly"] = "weekly"
    # 0 = Sunday ... 6 = Saturday
    days_of_week: List[int]


class IntervalSchedule(BaseModel):
    type: Literal["interval"] = "interval"
    start_date: date
    interval_days: int = Field(gt=0)


class MonthlyDateSchedule(BaseModel):
    type: Literal["monthly_date"] = "monthly_date"
    days_of_month: List[int]
    
    @field_validator("days_of_month")
    @classmethod
    def days_in_range(cls, days: List[int]) -> List[int]:
        for day in days:
            if not 1 <= day <= 31:
                raise ValueError(f"Day of month must be between 1 and 31, got {day}")
        return days


class WeekdayOccurrence(BaseModel):
    """The n-th given weekday of a month; negative weeks count from the end."""
    week: int
    day: int = Field(ge=0, le=6)


class MonthlyWeekdaySchedule(BaseModel):
    type: Literal["monthly_weekday"] = "monthly_weekday"
    occurrences: List[WeekdayOccurrence]


class RandomSchedule(BaseModel):
    type: Literal["random"] = "random"
    scheduled_dates: List[date]


TaskSchedule = Annotated[
    Union[WeeklySchedule, IntervalSchedule, MonthlyDateSchedule, MonthlyWeekdaySchedule, RandomSchedule],
    Field(discriminator="type")
]


class MonthlyTask(BaseModel):
    """A recurring task definition."""
    id: str
    name: str
    description: Optional[str] = None
    applies_to_role: str
    time_of_day: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    schedule: TaskSchedule


class MediaAttachment(BaseModel):
    """Opaque reference to a stored photo or video."""
    url: str
    type: str = "photo"


class TaskCompletionRecord(BaseModel):
    task_id: str
    task_name: str
    completed_by: Optional[SimpleUser] = None
    assigned_date: date
    completed_at: Optional[datetime] = None
    media: Optional[List[MediaAttachment]] = None
    note: Optional[str] = None
    note_created_at: Optional[datetime] = None


class ShiftResponsibleGroup(BaseModel):
    shift_id: str
    shift_label: str
    users: List[AssignedUser] = []


class MonthlyTaskAssignment(BaseModel):
    """Who is responsible for a recurring task on one date."""
    task_id: str
    task_name: str
    description: Optional[str] = None
    assigned_date: date
    applies_to_role: str
    responsible_users_by_shift: List[ShiftResponsibleGroup] = []
    responsible_user_ids: List[str] = []
    completions: List[TaskCompletionRecord] = []
    other_completions: List[TaskCompletionRecord] = []
