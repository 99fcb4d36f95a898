"""Business logic services package."""
from shiftboard.services.change_feed import ChangeFeed
from shiftboard.services.user_directory import UserDirectory
from shiftboard.services.schedule_store import ScheduleStore
from shiftboard.services.pass_request_service import PassRequestService
from shiftboard.services.monthly_task_service import MonthlyTaskService, resolve_task_assignment

__all__ = [
    "ChangeFeed",
    "UserDirectory",
    "ScheduleStore",
    "PassRequestService",
    "MonthlyTaskService",
    "resolve_task_assignment"
]
