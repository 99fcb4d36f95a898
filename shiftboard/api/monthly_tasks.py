"""Recurring task endpoints."""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
import logging

from shiftboard.api.dependencies import get_monthly_task_service
from shiftboard.exceptions import ResourceNotFoundError
from shiftboard.schemas.monthly_task import MediaAttachment, MonthlyTask
from shiftboard.schemas.pass_request import SimpleUser
from shiftboard.services.monthly_task_service import MonthlyTaskService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/monthly-tasks", tags=["monthly-tasks"])


class CompletionUpdate(BaseModel):
    task_id: str
    task_name: str
    user: SimpleUser
    date: date
    is_completed: bool
    media: Optional[List[MediaAttachment]] = None
    note: Optional[str] = None


@router.get("")
async def get_tasks(service: MonthlyTaskService = Depends(get_monthly_task_service)):
    """List recurring task definitions."""
    return JSONResponse(content=[t.model_dump(mode="json") for t in service.get_tasks()])


@router.put("")
async def set_tasks(tasks: List[MonthlyTask], service: MonthlyTaskService = Depends(get_monthly_task_service)):
    """Replace recurring task definitions."""
    return JSONResponse(content=[t.model_dump(mode="json") for t in service.set_tasks(tasks)])


@router.get("/assignments/{day}")
async def get_assignments(day: date, service: MonthlyTaskService = Depends(get_monthly_task_service)):
    """Owner view of who is responsible for each task due on a date."""
    return JSONResponse(content=[a.model_dump(mode="json") for a in service.resolve_assignments(day)])


@router.get("/assignments/{day}/staff/{user_id}")
async def get_staff_assignments(
    day: date,
    user_id: str,
    service: MonthlyTaskService = Depends(get_monthly_task_service)
):
    """Tasks due on a date that concern one staff member."""
    assignments = service.resolve_assignments_for_staff(day, user_id)
    return JSONResponse(content=[a.model_dump(mode="json") for a in assignments])


@router.get("/completions")
async def get_month_completions(
    year: int = Query(...),
    month: int = Query(..., ge=1, le=12),
    service: MonthlyTaskService = Depends(get_monthly_task_service)
):
    """All completion records of a month."""
    records = service.get_completions_for_month(year, month)
    return JSONResponse(content=[r.model_dump(mode="json") for r in records])


@router.put("/completions")
async def update_completion(body: CompletionUpdate, service: MonthlyTaskService = Depends(get_monthly_task_service)):
    """Mark, unmark or annotate a task for a date."""
    record = service.update_completion_status(
        body.task_id,
        body.task_name,
        body.user,
        body.date,
        body.is_completed,
        media=body.media,
        note=body.note
    )
    return JSONResponse(content={"completion": record.model_dump(mode="json") if record else None})


@router.delete("/completions/{date_key}/{user_id}/{task_id}")
async def delete_completion(
    date_key: str,
    user_id: str,
    task_id: str,
    service: MonthlyTaskService = Depends(get_monthly_task_service)
):
    """
    Remove one completion record.

    Raises:
        ResourceNotFoundError: If there is no such record
    """
    if not service.delete_completion(task_id, user_id, date_key):
        raise ResourceNotFoundError("completion", f"{date_key}_{user_id}_{task_id}")
    return JSONResponse(content={"success": True})
