"""Shared FastAPI dependencies."""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from shiftboard.database import get_db
from shiftboard.services.change_feed import ChangeFeed
from shiftboard.services.monthly_task_service import MonthlyTaskService
from shiftboard.services.pass_request_service import PassRequestService
from shiftboard.services.schedule_store import ScheduleStore


def get_change_feed(request: Request) -> ChangeFeed:
    """Return the application's change feed, creating it on first use."""
    feed = getattr(request.app.state, "change_feed", None)
    if feed is None:
        feed = ChangeFeed()
        request.app.state.change_feed = feed
    return feed


def get_schedule_store(
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed)
) -> ScheduleStore:
    return ScheduleStore(db, feed)


def get_pass_request_service(
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed)
) -> PassRequestService:
    return PassRequestService(db, feed)


def get_monthly_task_service(db: Session = Depends(get_db)) -> MonthlyTaskService:
    return MonthlyTaskService(db)
