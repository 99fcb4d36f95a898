"""Pass request endpoints."""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import List, Optional
import logging

from shiftboard.api.dependencies import get_pass_request_service
from shiftboard.exceptions import ResourceNotFoundError
from shiftboard.schemas.pass_request import PassRequest, SimpleUser
from shiftboard.schemas.schedule import AssignedShift
from shiftboard.services.pass_request_service import PassRequestService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pass-requests", tags=["pass-requests"])


class PassRequestCreate(BaseModel):
    week_id: str
    shift_id: str
    requester: SimpleUser


class DirectPassRequestCreate(PassRequestCreate):
    target: SimpleUser
    is_swap: bool = False
    target_shift_id: Optional[str] = None


class ActorBody(BaseModel):
    """The user performing an action."""
    user: SimpleUser


class AssignBody(BaseModel):
    assigned_user: SimpleUser
    resolver: SimpleUser


def _find_shift(service: PassRequestService, week_id: str, shift_id: str) -> AssignedShift:
    shift = service.store.get_or_raise(week_id).find_shift(shift_id)
    if shift is None:
        raise ResourceNotFoundError("shift", shift_id)
    return shift


def _respond(request: PassRequest) -> JSONResponse:
    return JSONResponse(content=request.model_dump(mode="json"))


def _respond_list(requests: List[PassRequest]) -> JSONResponse:
    return JSONResponse(content=[r.model_dump(mode="json") for r in requests])


@router.post("")
async def create_pass_request(
    body: PassRequestCreate,
    service: PassRequestService = Depends(get_pass_request_service)
):
    """Offer a shift to anyone who can take it."""
    shift = _find_shift(service, body.week_id, body.shift_id)
    return _respond(service.request_pass(shift, body.requester))


@router.post("/direct")
async def create_direct_pass_request(
    body: DirectPassRequestCreate,
    service: PassRequestService = Depends(get_pass_request_service)
):
    """Offer a shift, or a swap, to one named user."""
    shift = _find_shift(service, body.week_id, body.shift_id)
    target_shift = None
    if body.target_shift_id:
        target_shift = _find_shift(service, body.week_id, body.target_shift_id)
    return _respond(service.request_direct_pass(
        shift, body.requester, body.target, body.is_swap, target_shift
    ))


@router.get("")
async def list_relevant(
    user_id: str = Query(...),
    role: Optional[str] = Query(None),
    service: PassRequestService = Depends(get_pass_request_service)
):
    """List the requests a staff member should see, newest first."""
    return _respond_list(service.list_relevant_requests(user_id, role))


@router.get("/all")
async def list_all(service: PassRequestService = Depends(get_pass_request_service)):
    """List every request for managers, newest first."""
    return _respond_list(service.list_all_requests())


@router.get("/{request_id}")
async def get_pass_request(request_id: str, service: PassRequestService = Depends(get_pass_request_service)):
    return _respond(service.get_request(request_id))


@router.post("/{request_id}/accept")
async def accept(request_id: str, body: ActorBody, service: PassRequestService = Depends(get_pass_request_service)):
    """Claim a request."""
    return _respond(service.accept_pass(request_id, body.user))


@router.post("/{request_id}/decline")
async def decline(request_id: str, body: ActorBody, service: PassRequestService = Depends(get_pass_request_service)):
    """Turn down a request."""
    return _respond(service.decline_pass(request_id, body.user))


@router.post("/{request_id}/approve")
async def approve(request_id: str, body: ActorBody, service: PassRequestService = Depends(get_pass_request_service)):
    """Approve the current claim."""
    return _respond(service.approve_pass_request(request_id, body.user))


@router.post("/{request_id}/reject-approval")
async def reject_approval(
    request_id: str,
    body: ActorBody,
    service: PassRequestService = Depends(get_pass_request_service)
):
    """Reject the current claim and reopen the request."""
    return _respond(service.reject_pass_request_approval(request_id, body.user))


@router.post("/{request_id}/revert")
async def revert(request_id: str, body: ActorBody, service: PassRequestService = Depends(get_pass_request_service)):
    """Undo an approved request."""
    return _respond(service.revert_pass_request(request_id, body.user))


@router.post("/{request_id}/assign")
async def assign(request_id: str, body: AssignBody, service: PassRequestService = Depends(get_pass_request_service)):
    """Hand the shift straight to a chosen user."""
    return _respond(service.resolve_pass_request_by_assignment(request_id, body.assigned_user, body.resolver))


@router.post("/{request_id}/cancel")
async def cancel(request_id: str, body: ActorBody, service: PassRequestService = Depends(get_pass_request_service)):
    """Withdraw an open request."""
    return _respond(service.cancel_pass_request(request_id, body.user))
