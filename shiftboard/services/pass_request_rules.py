"""
Pass request state machine rules.

Holds the status transition table, the document <-> schema mapping, the
roster reconciliation pass and the merge used for the "relevant requests"
listing. Everything here is free of I/O.
"""
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence

from shiftboard.exceptions import InvalidStatusTransitionError
from shiftboard.models.notification import NotificationRecord, PassRequestStatus
from shiftboard.schemas.pass_request import PassRequest, PassRequestPayload, SimpleUser
from shiftboard.schemas.schedule import AssignedShift
from shiftboard.utils.roles import is_any_role
from shiftboard.utils.time_slots import find_conflict


NOTIFICATIONS_FEED_KEY = "notifications"

REASON_REQUESTER_LEFT = "Auto-cancelled: the requester is no longer in this shift."
REASON_COUNTERPART_CHANGED = "Auto-cancelled: the shift to swap with has changed."
REASON_CLAIMANT_LEFT_COUNTERPART = "Auto-cancelled: the claimant is no longer in the shift to swap with."
REASON_CLAIMANT_CONFLICT = "Auto-cancelled: the claimant now has a conflicting shift."
REASON_ANOTHER_CLAIM_APPROVED = "Another claim for this shift was approved."
REASON_EXPIRED = "Auto-cancelled: the shift has already started."
REASON_CANCELLED_BY_MANAGER = "Cancelled by a manager."
REASON_CANCELLED_BY_REQUESTER = "Cancelled by the requester."


def declined_reason(user_name: str) -> str:
    return f"Declined by {user_name}."


PENDING = PassRequestStatus.PENDING
PENDING_APPROVAL = PassRequestStatus.PENDING_APPROVAL
RESOLVED = PassRequestStatus.RESOLVED
CANCELLED = PassRequestStatus.CANCELLED

# Every status must appear as a key; cancelled is terminal and resolved only
# goes back to pending through an explicit revert.
ALLOWED_TRANSITIONS: Dict[PassRequestStatus, FrozenSet[PassRequestStatus]] = {
    PENDING: frozenset({PENDING_APPROVAL, RESOLVED, CANCELLED}),
    PENDING_APPROVAL: frozenset({PENDING_APPROVAL, PENDING, RESOLVED, CANCELLED}),
    RESOLVED: frozenset({PENDING}),
    CANCELLED: frozenset(),
}


def can_transition(current: PassRequestStatus, target: PassRequestStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: PassRequestStatus, target: PassRequestStatus, action: str) -> None:
    """
    Check a status change against the transition table.

    Raises:
        InvalidStatusTransitionError: If the change is not allowed
    """
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current.value, action)


def to_schema(record: NotificationRecord) -> PassRequest:
    """Build the PassRequest schema from a stored notification."""
    return PassRequest(
        id=record.id,
        type=record.type,
        status=record.status,
        payload=PassRequestPayload.model_validate(record.payload),
        created_at=record.created_at,
        resolved_by=SimpleUser.model_validate(record.resolved_by) if record.resolved_by else None,
        resolved_at=record.resolved_at
    )


def apply_to_record(record: NotificationRecord, request: PassRequest) -> None:
    """Copy a PassRequest onto its stored notification, query columns included."""
    payload = request.payload
    record.id = request.id
    record.type = request.type
    record.status = request.status
    record.week_id = payload.week_id
    record.shift_id = payload.shift_id
    record.requesting_user_id = payload.requesting_user.user_id
    record.target_user_id = payload.target_user_id
    record.taken_by_user_id = payload.taken_by.user_id if payload.taken_by else None
    record.payload = payload.model_dump(mode="json")
    record.created_at = request.created_at
    record.resolved_by = request.resolved_by.model_dump(mode="json") if request.resolved_by else None
    record.resolved_at = request.resolved_at


def cancelled(
    request: PassRequest,
    reason: str,
    resolver: Optional[SimpleUser] = None,
    at: Optional[datetime] = None,
    clear_claim: bool = False
) -> PassRequest:
    """Return a cancelled copy of a request carrying the reason."""
    ensure_transition(request.status, CANCELLED, "cancel")
    payload_update = {"cancellation_reason": reason}
    if clear_claim:
        payload_update["taken_by"] = None
    update = {
        "status": CANCELLED,
        "payload": request.payload.model_copy(update=payload_update),
        "resolved_at": at or datetime.utcnow(),
    }
    if resolver is not None:
        update["resolved_by"] = resolver
    return request.model_copy(update=update)


def claim_released(request: PassRequest) -> PassRequest:
    """
    Return a copy put back to pending without its claimant.

    The claimant is added to declined_by so the request is not offered to
    them again.
    """
    ensure_transition(request.status, PENDING, "release")
    payload = request.payload
    declined_by = list(payload.declined_by)
    if payload.taken_by and payload.taken_by.user_id not in declined_by:
        declined_by.append(payload.taken_by.user_id)
    return request.model_copy(update={
        "status": PENDING,
        "payload": payload.model_copy(update={"taken_by": None, "declined_by": declined_by}),
    })


def claimant_conflict(request: PassRequest, shift: AssignedShift, shifts: Sequence[AssignedShift]) -> Optional[AssignedShift]:
    """
    Find a shift that would double-book the claimant of a non-swap request.

    A claimant already on the shift itself counts as a conflict with it.
    """
    taker = request.payload.taken_by
    if taker is None:
        return None
    if shift.has_user(taker.user_id):
        return shift
    return find_conflict(taker.user_id, shift, [s for s in shifts if s.date == shift.date])


def reconcile_open_requests(open_requests: Iterable[PassRequest], shifts: Sequence[AssignedShift]) -> List[PassRequest]:
    """
    Re-check open requests against a new shift list.

    Args:
        open_requests: Requests in pending or pending_approval for the week
        shifts: The roster about to be saved

    Returns:
        Updated copies of the requests whose preconditions no longer hold
    """
    by_id = {shift.id: shift for shift in shifts}
    changed: List[PassRequest] = []

    for request in open_requests:
        payload = request.payload
        shift = by_id.get(payload.shift_id)

        if shift is None or not shift.has_user(payload.requesting_user.user_id):
            changed.append(cancelled(request, REASON_REQUESTER_LEFT))
            continue

        if payload.is_swap_request and payload.target_user_shift_payload is not None:
            counterpart = by_id.get(payload.target_user_shift_payload.shift_id)
            if counterpart is None or not counterpart.has_user(payload.target_user_id):
                changed.append(cancelled(request, REASON_COUNTERPART_CHANGED))
                continue

        if (request.status == PENDING_APPROVAL and payload.taken_by is not None
                and not payload.is_swap_request):
            if claimant_conflict(request, shift, shifts) is not None:
                changed.append(claim_released(request))

    return changed


def merge_relevant_requests(
    my_requests: Iterable[PassRequest],
    other_requests: Iterable[PassRequest],
    user_id: str,
    roles: Sequence[str]
) -> List[PassRequest]:
    """
    Combine a user's own requests with the broadcasts they may claim.

    my_requests are the ones the user created, was targeted by or claimed;
    they are always kept. From other_requests only pending broadcasts are
    kept whose role is a wildcard or one of the user's roles and which the
    user has not declined. Newest first, ties broken by id.
    """
    combined: Dict[str, PassRequest] = {}

    for request in my_requests:
        combined[request.id] = request

    for request in other_requests:
        payload = request.payload
        if request.id in combined or request.status != PENDING:
            continue
        if payload.requesting_user.user_id == user_id or payload.target_user_id:
            continue
        if not is_any_role(payload.shift_role) and payload.shift_role not in roles:
            continue
        if user_id in payload.declined_by:
            continue
        combined[request.id] = request

    return sorted(combined.values(), key=lambda r: (r.created_at, r.id), reverse=True)
