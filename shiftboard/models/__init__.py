"""Database models package."""
from shiftboard.models.user import User
from shiftboard.models.schedule import ScheduleRecord, ScheduleStatus
from shiftboard.models.notification import (
    NotificationRecord,
    NotificationType,
    PassRequestStatus,
)
from shiftboard.models.app_data import AppData
from shiftboard.models.availability import AvailabilityRecord
from shiftboard.models.monthly_task import TaskCompletionDocument

__all__ = [
    "User",
    "ScheduleRecord",
    "ScheduleStatus",
    "NotificationRecord",
    "NotificationType",
    "PassRequestStatus",
    "AppData",
    "AvailabilityRecord",
    "TaskCompletionDocument",
]
