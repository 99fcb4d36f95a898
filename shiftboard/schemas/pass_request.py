"""Pass request (shift hand-over / swap) schemas."""
from pydantic import BaseModel, model_validator
from typing import Optional, List
from datetime import date, datetime

from shiftboard.models.notification import NotificationType, PassRequestStatus
from shiftboard.schemas.schedule import TimeSlot, AssignedUser


class SimpleUser(BaseModel):
    """The acting user of an operation."""
    user_id: str
    user_name: str


class TargetShiftPayload(BaseModel):
    """Snapshot of the counterpart shift of a swap."""
    shift_id: str
    shift_label: str
    shift_time_slot: TimeSlot
    date: date


class PassRequestPayload(BaseModel):
    week_id: str
    shift_id: str
    shift_label: str
    shift_date: date
    shift_time_slot: TimeSlot
    shift_role: str
    requesting_user: AssignedUser
    target_user_id: Optional[str] = None
    is_swap_request: bool = False
    target_user_shift_payload: Optional[TargetShiftPayload] = None
    taken_by: Optional[AssignedUser] = None
    declined_by: List[str] = []
    cancellation_reason: Optional[str] = None
    
    @model_validator(mode="after")
    def swap_has_counterpart(self) -> "PassRequestPayload":
        if self.is_swap_request and self.target_user_shift_payload is None:
            raise ValueError("A swap request needs the counterpart shift")
        if self.is_swap_request and not self.target_user_id:
            raise ValueError("A swap request must be aimed at a specific user")
        return self


class PassRequest(BaseModel):
    """A pass_request notification."""
    id: str
    type: NotificationType = NotificationType.PASS_REQUEST
    status: PassRequestStatus
    payload: PassRequestPayload
    created_at: datetime
    resolved_by: Optional[SimpleUser] = None
    resolved_at: Optional[datetime] = None
    
    @property
    def is_open(self) -> bool:
        return self.status.is_open
    
    @property
    def is_direct(self) -> bool:
        return self.payload.target_user_id is not None
