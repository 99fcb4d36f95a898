"""Pydantic document schemas."""
from shiftboard.schemas.schedule import (
    TimeSlot,
    AssignedUser,
    AssignedShift,
    ShiftTemplate,
    Schedule,
    Availability,
)
from shiftboard.schemas.pass_request import (
    SimpleUser,
    TargetShiftPayload,
    PassRequestPayload,
    PassRequest,
)
from shiftboard.schemas.monthly_task import (
    WeeklySchedule,
    IntervalSchedule,
    MonthlyDateSchedule,
    WeekdayOccurrence,
    MonthlyWeekdaySchedule,
    RandomSchedule,
    MonthlyTask,
    MediaAttachment,
    TaskCompletionRecord,
    ShiftResponsibleGroup,
    MonthlyTaskAssignment,
)
from shiftboard.schemas.user import DirectoryUser

__all__ = [
    "TimeSlot",
    "AssignedUser",
    "AssignedShift",
    "ShiftTemplate",
    "Schedule",
    "Availability",
    "SimpleUser",
    "TargetShiftPayload",
    "PassRequestPayload",
    "PassRequest",
    "WeeklySchedule",
    "IntervalSchedule",
    "MonthlyDateSchedule",
    "WeekdayOccurrence",
    "MonthlyWeekdaySchedule",
    "RandomSchedule",
    "MonthlyTask",
    "MediaAttachment",
    "TaskCompletionRecord",
    "ShiftResponsibleGroup",
    "MonthlyTaskAssignment",
    "DirectoryUser",
]
