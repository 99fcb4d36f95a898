"""Roster, availability and shift template endpoints."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
import logging

from shiftboard.api.dependencies import get_schedule_store
from shiftboard.models.schedule import ScheduleStatus
from shiftboard.schemas.pass_request import SimpleUser
from shiftboard.schemas.schedule import AssignedShift, AssignedUser, ShiftTemplate, TimeSlot
from shiftboard.services.schedule_store import ScheduleStore
from shiftboard.utils.time_slots import calculate_total_hours


logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedules"])


class ScheduleUpdate(BaseModel):
    status: Optional[ScheduleStatus] = None
    shifts: Optional[List[AssignedShift]] = None


class RolloverBody(BaseModel):
    templates: Optional[List[ShiftTemplate]] = None


class AvailabilityBody(BaseModel):
    user: SimpleUser
    date: date
    available_slots: List[TimeSlot] = []


@router.get("/schedules/{week_id}")
async def get_schedule(week_id: str, store: ScheduleStore = Depends(get_schedule_store)):
    """
    Get the roster of a week.

    Raises:
        ResourceNotFoundError: If the week has no roster
    """
    schedule = store.get_or_raise(week_id)
    return JSONResponse(content=schedule.model_dump(mode="json"))


@router.put("/schedules/{week_id}")
async def update_schedule(
    week_id: str,
    body: ScheduleUpdate,
    store: ScheduleStore = Depends(get_schedule_store)
):
    """
    Merge-write a week's roster; open pass requests are reconciled.

    Returns:
        JSON response with the saved roster
    """
    partial = body.model_dump(exclude_none=True)
    schedule = store.update(week_id, partial)
    return JSONResponse(content=schedule.model_dump(mode="json"))


@router.post("/schedules/{week_id}/rollover")
async def rollover_schedule(
    week_id: str,
    body: Optional[RolloverBody] = None,
    store: ScheduleStore = Depends(get_schedule_store)
):
    """Create the following week's draft from templates."""
    templates = body.templates if body else None
    schedule = store.rollover_draft(week_id, templates)
    return JSONResponse(content=schedule.model_dump(mode="json"))


@router.post("/schedules/{week_id}/shifts/{shift_id}/staff")
async def add_staff(
    week_id: str,
    shift_id: str,
    user: AssignedUser,
    store: ScheduleStore = Depends(get_schedule_store)
):
    """Put a user on a shift."""
    schedule = store.add_staff_to_shift(week_id, shift_id, user)
    return JSONResponse(content=schedule.model_dump(mode="json"))


@router.put("/availability")
async def save_availability(body: AvailabilityBody, store: ScheduleStore = Depends(get_schedule_store)):
    """Store a user's free time for a day."""
    availability = store.save_availability(body.user, body.date, body.available_slots)
    content = availability.model_dump(mode="json")
    content["total_hours"] = calculate_total_hours(availability.available_slots)
    return JSONResponse(content=content)


@router.get("/availability/{week_id}")
async def get_availability(week_id: str, store: ScheduleStore = Depends(get_schedule_store)):
    """List the availability submitted for a week."""
    result = [a.model_dump(mode="json") for a in store.get_availability_for_week(week_id)]
    return JSONResponse(content=result)


@router.get("/shift-templates")
async def get_shift_templates(store: ScheduleStore = Depends(get_schedule_store)):
    """List the stored shift templates."""
    return JSONResponse(content=[t.model_dump(mode="json") for t in store.get_shift_templates()])


@router.put("/shift-templates")
async def update_shift_templates(
    templates: List[ShiftTemplate],
    store: ScheduleStore = Depends(get_schedule_store)
):
    """Replace the stored shift templates."""
    saved = store.update_shift_templates(templates)
    return JSONResponse(content=[t.model_dump(mode="json") for t in saved])
