"""Shift pass and swap request workflow."""
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Callable, Iterable, List, Optional
from datetime import datetime
import logging
import uuid

import pytz

from shiftboard.database import commit_or_raise
from shiftboard.exceptions import (
    ConcurrencyError,
    ConflictError,
    InvalidStatusTransitionError,
    MissingFieldError,
    NotEligibleError,
    ResourceNotFoundError,
    StalePreconditionError,
)
from shiftboard.models.notification import NotificationRecord, NotificationType, OPEN_STATUSES
from shiftboard.schemas.pass_request import (
    PassRequest,
    PassRequestPayload,
    SimpleUser,
    TargetShiftPayload,
)
from shiftboard.schemas.schedule import AssignedShift, AssignedUser, Schedule
from shiftboard.services import pass_request_rules as rules
from shiftboard.services.change_feed import ChangeFeed
from shiftboard.services.schedule_store import ScheduleStore
from shiftboard.services.user_directory import UserDirectory
from shiftboard.utils import timezone
from shiftboard.utils.roles import is_any_role, holds_role
from shiftboard.utils.time_slots import find_conflict
from shiftboard.utils.week import week_id_for


logger = logging.getLogger(__name__)

REASON_NOT_IN_SHIFT = "You are no longer assigned to this shift."
REASON_TARGET_SHIFT_CHANGED = "The other person's shift has changed."


def _replace_user(shift: AssignedShift, remove_id: Optional[str], add: Optional[AssignedUser]) -> AssignedShift:
    users = [u for u in shift.assigned_users if u.user_id != remove_id]
    if add is not None and not any(u.user_id == add.user_id for u in users):
        users.append(add)
    return shift.model_copy(update={"assigned_users": users})


class PassRequestService:
    """Service driving pass requests through their lifecycle."""

    def __init__(
        self,
        db: Session,
        feed: Optional[ChangeFeed] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize pass request service.

        Args:
            db: Database session
            feed: Change feed shared with the schedule store
            clock: Returns the current aware datetime, used for expiry
        """
        self.db = db
        self.feed = feed or ChangeFeed()
        self.clock = clock or timezone.now
        self.store = ScheduleStore(db, self.feed)
        self.directory = UserDirectory(db)

    def _timestamp(self) -> datetime:
        return self.clock().astimezone(pytz.utc).replace(tzinfo=None)

    def _get_record(self, request_id: str) -> NotificationRecord:
        record = self.db.query(NotificationRecord).filter(
            NotificationRecord.id == request_id,
            NotificationRecord.type == NotificationType.PASS_REQUEST
        ).first()
        if record is None:
            raise ResourceNotFoundError("request", request_id)
        return record

    def _open_record_for(self, shift_id: str, requesting_user_id: str) -> Optional[NotificationRecord]:
        return self.db.query(NotificationRecord).filter(
            NotificationRecord.shift_id == shift_id,
            NotificationRecord.requesting_user_id == requesting_user_id,
            NotificationRecord.status.in_(OPEN_STATUSES)
        ).first()

    def _save(self, record: NotificationRecord, request: PassRequest) -> PassRequest:
        rules.apply_to_record(record, request)
        commit_or_raise(self.db, "request", request.id)
        self.feed.publish(rules.NOTIFICATIONS_FEED_KEY, [request])
        return request

    def _cancel_and_raise(self, record: NotificationRecord, request: PassRequest, reason: str) -> None:
        """Commit the request as cancelled, then report the stale precondition."""
        self._save(record, rules.cancelled(request, reason, at=self._timestamp()))
        logger.warning(f"Request {request.id} cancelled: {reason}")
        raise StalePreconditionError(reason, request.id)

    def _current_shift(self, week_id: str, shift_id: str) -> tuple:
        schedule = self.store.get(week_id)
        shift = schedule.find_shift(shift_id) if schedule else None
        return schedule, shift

    def _cascade_cancel(self, request: PassRequest, resolver: SimpleUser) -> List[PassRequest]:
        """Stage cancellation of the other open requests on the same shift."""
        others = self.db.query(NotificationRecord).filter(
            NotificationRecord.shift_id == request.payload.shift_id,
            NotificationRecord.id != request.id,
            NotificationRecord.status.in_(OPEN_STATUSES)
        ).all()

        cancelled = []
        for record in others:
            other = rules.cancelled(
                rules.to_schema(record),
                rules.REASON_ANOTHER_CLAIM_APPROVED,
                resolver=resolver,
                at=self._timestamp()
            )
            rules.apply_to_record(record, other)
            cancelled.append(other)
            logger.info(f"Cascade-cancelled request {other.id} on shift {request.payload.shift_id}")
        return cancelled

    def _commit_with_schedule(
        self,
        record: NotificationRecord,
        request: PassRequest,
        schedule: Schedule,
        shifts: List[AssignedShift],
        cascaded: Iterable[PassRequest] = ()
    ) -> PassRequest:
        """Write the request, the cascade and the roster in one commit."""
        cascaded = list(cascaded)
        rules.apply_to_record(record, request)
        skip = {request.id, *(c.id for c in cascaded)}
        saved, reconciled = self.store.stage_update(
            schedule.week_id,
            shifts,
            skip_request_ids=skip,
            expected_version=schedule.version
        )
        commit_or_raise(self.db, "schedule", schedule.week_id)
        self.store.publish(saved, [request, *cascaded, *reconciled])
        return request

    def get_request(self, request_id: str) -> PassRequest:
        """
        Get a pass request.

        Raises:
            ResourceNotFoundError: If the request does not exist
        """
        return rules.to_schema(self._get_record(request_id))

    def subscribe(self, callback: Callable[[List[PassRequest]], None]) -> Callable[[], None]:
        """Watch committed pass request changes; returns an unsubscribe function."""
        return self.feed.subscribe(rules.NOTIFICATIONS_FEED_KEY, callback)

    def _create(
        self,
        shift: AssignedShift,
        requester: AssignedUser,
        target_user_id: Optional[str] = None,
        is_swap: bool = False,
        target_shift: Optional[AssignedShift] = None
    ) -> PassRequest:
        week_id = week_id_for(shift.date)
        payload = PassRequestPayload(
            week_id=week_id,
            shift_id=shift.id,
            shift_label=shift.label,
            shift_date=shift.date,
            shift_time_slot=shift.time_slot,
            shift_role=shift.role,
            requesting_user=requester,
            target_user_id=target_user_id,
            is_swap_request=is_swap,
            target_user_shift_payload=TargetShiftPayload(
                shift_id=target_shift.id,
                shift_label=target_shift.label,
                shift_time_slot=target_shift.time_slot,
                date=target_shift.date
            ) if target_shift is not None else None
        )
        request = PassRequest(
            id=str(uuid.uuid4()),
            status=rules.PENDING,
            payload=payload,
            created_at=self._timestamp()
        )
        record = NotificationRecord(id=request.id)
        self.db.add(record)
        try:
            self._save(record, request)
        except ConcurrencyError:
            # Another writer opened a request for this shift and user first
            existing = self._open_record_for(shift.id, requester.user_id)
            if existing is None:
                raise
            logger.info(f"Returning request {existing.id} opened concurrently for shift {shift.id}")
            return rules.to_schema(existing)

        kind = "swap" if is_swap else ("direct" if target_user_id else "broadcast")
        logger.info(f"Created {kind} pass request {request.id} for shift {shift.id} by {requester.user_id}")
        return request

    def request_pass(self, shift: AssignedShift, requester: SimpleUser) -> PassRequest:
        """
        Offer a shift to anyone who can take it.

        Args:
            shift: Shift being given away
            requester: User currently working it

        Returns:
            The new request, or the open request that already exists for this
            shift and user

        Raises:
            StalePreconditionError: If the requester is no longer on the shift
        """
        week_id = week_id_for(shift.date)
        _, current = self._current_shift(week_id, shift.id)
        assigned = current.find_user(requester.user_id) if current else None
        if assigned is None:
            logger.warning(f"Pass request refused: {requester.user_id} not on shift {shift.id}")
            raise StalePreconditionError(REASON_NOT_IN_SHIFT)

        existing = self._open_record_for(shift.id, requester.user_id)
        if existing is not None:
            logger.info(f"Returning open request {existing.id} for shift {shift.id}")
            return rules.to_schema(existing)

        return self._create(current, assigned)

    def request_direct_pass(
        self,
        shift: AssignedShift,
        requester: SimpleUser,
        target: SimpleUser,
        is_swap: bool = False,
        target_shift: Optional[AssignedShift] = None
    ) -> PassRequest:
        """
        Offer a shift, or a swap of shifts, to one named user.

        Args:
            shift: Shift being given away
            requester: User currently working it
            target: The only user who may take it
            is_swap: Whether the requester takes target_shift in exchange
            target_shift: Target's shift, required for a swap

        Returns:
            The new request, or the already open one for this shift and user

        Raises:
            StalePreconditionError: If either user is no longer on their shift
            MissingFieldError: If a swap has no target_shift
            NotEligibleError: If the target is the requester, or the target's
                shift already has an open request
        """
        if target.user_id == requester.user_id:
            raise NotEligibleError(requester.user_id, "You cannot send a request to yourself.")
        if is_swap and target_shift is None:
            raise MissingFieldError("target_shift")

        week_id = week_id_for(shift.date)
        schedule, current = self._current_shift(week_id, shift.id)
        assigned = current.find_user(requester.user_id) if current else None
        if assigned is None:
            logger.warning(f"Direct request refused: {requester.user_id} not on shift {shift.id}")
            raise StalePreconditionError(REASON_NOT_IN_SHIFT)

        existing = self._open_record_for(shift.id, requester.user_id)
        if existing is not None:
            logger.info(f"Returning open request {existing.id} for shift {shift.id}")
            return rules.to_schema(existing)

        counterpart = None
        if is_swap:
            counterpart = schedule.find_shift(target_shift.id)
            if counterpart is None or not counterpart.has_user(target.user_id):
                logger.warning(f"Swap refused: {target.user_id} not on shift {target_shift.id}")
                raise StalePreconditionError(REASON_TARGET_SHIFT_CHANGED)

            busy = self.db.query(NotificationRecord).filter(
                NotificationRecord.shift_id == counterpart.id,
                NotificationRecord.status.in_(OPEN_STATUSES)
            ).first()
            if busy is not None:
                raise NotEligibleError(
                    requester.user_id,
                    "The other shift already has a pending request."
                )

        return self._create(current, assigned, target.user_id, is_swap, counterpart)

    def _taken_by_role(self, request: PassRequest, shift: AssignedShift, acceptor: SimpleUser) -> Optional[str]:
        if request.payload.requesting_user.assigned_role:
            return request.payload.requesting_user.assigned_role
        if not is_any_role(shift.role):
            return shift.role
        directory_user = self.directory.get_user(acceptor.user_id)
        return directory_user.role if directory_user else None

    def accept_pass(self, request_id: str, acceptor: SimpleUser) -> PassRequest:
        """
        Claim a request; the claim then waits for a manager.

        A later claim by someone else replaces this one until approval.

        Raises:
            ResourceNotFoundError: If the request does not exist
            InvalidStatusTransitionError: If the request is no longer open
            NotEligibleError: If the acceptor may not claim this request
            StalePreconditionError: If the requester left the shift (the
                request is cancelled first)
            ConflictError: If the acceptor would be double-booked
        """
        record = self._get_record(request_id)
        request = rules.to_schema(record)
        payload = request.payload

        if not request.is_open:
            raise InvalidStatusTransitionError(request.status.value, "accept")
        if acceptor.user_id == payload.requesting_user.user_id:
            raise NotEligibleError(acceptor.user_id, "You cannot take your own request.")
        if request.is_direct and payload.target_user_id != acceptor.user_id:
            raise NotEligibleError(acceptor.user_id, "This request was sent to someone else.")
        if not request.is_direct and acceptor.user_id in payload.declined_by:
            raise NotEligibleError(acceptor.user_id, "You already declined this request.")

        schedule, shift = self._current_shift(payload.week_id, payload.shift_id)
        if shift is None or not shift.has_user(payload.requesting_user.user_id):
            self._cancel_and_raise(record, request, rules.REASON_REQUESTER_LEFT)

        if payload.is_swap_request:
            counterpart = schedule.find_shift(payload.target_user_shift_payload.shift_id)
            if counterpart is None or not counterpart.has_user(acceptor.user_id):
                self._cancel_and_raise(record, request, rules.REASON_COUNTERPART_CHANGED)

        required_role = payload.requesting_user.assigned_role
        if required_role and not is_any_role(required_role):
            directory_user = self.directory.get_user(acceptor.user_id)
            if directory_user is None or not holds_role(directory_user, required_role):
                raise NotEligibleError(acceptor.user_id, f"This shift needs the role \"{required_role}\".")

        if not payload.is_swap_request:
            if shift.has_user(acceptor.user_id):
                raise ConflictError(acceptor.user_name, shift)
            conflict = find_conflict(acceptor.user_id, shift, schedule.shifts_on(shift.date))
            if conflict is not None:
                logger.info(f"Accept refused for {acceptor.user_id} on {request_id}: overlaps {conflict.id}")
                raise ConflictError(acceptor.user_name, conflict)

        rules.ensure_transition(request.status, rules.PENDING_APPROVAL, "accept")
        taken_by = AssignedUser(
            user_id=acceptor.user_id,
            user_name=acceptor.user_name,
            assigned_role=self._taken_by_role(request, shift, acceptor)
        )
        claimed = request.model_copy(update={
            "status": rules.PENDING_APPROVAL,
            "payload": payload.model_copy(update={"taken_by": taken_by}),
        })
        self._save(record, claimed)

        logger.info(f"Request {request_id} claimed by {acceptor.user_id}")
        return claimed

    def decline_pass(self, request_id: str, decliner: SimpleUser) -> PassRequest:
        """
        Turn down a request.

        The target of a direct request cancels it; anyone declining a
        broadcast only hides it from themselves.

        Raises:
            ResourceNotFoundError: If the request does not exist
            InvalidStatusTransitionError: If the request is no longer open
            NotEligibleError: If the decliner is not the target of a direct
                request, or is the requester
        """
        record = self._get_record(request_id)
        request = rules.to_schema(record)
        payload = request.payload

        if not request.is_open:
            raise InvalidStatusTransitionError(request.status.value, "decline")

        if request.is_direct:
            if payload.target_user_id != decliner.user_id:
                raise NotEligibleError(decliner.user_id, "This request was sent to someone else.")
            declined = rules.cancelled(
                request,
                rules.declined_reason(decliner.user_name),
                resolver=decliner,
                at=self._timestamp()
            )
            logger.info(f"Direct request {request_id} declined by {decliner.user_id}")
            return self._save(record, declined)

        if payload.requesting_user.user_id == decliner.user_id:
            raise NotEligibleError(decliner.user_id, "You cannot decline your own request.")

        if decliner.user_id in payload.declined_by:
            return request

        declined = request.model_copy(update={
            "payload": payload.model_copy(update={"declined_by": [*payload.declined_by, decliner.user_id]})
        })
        logger.info(f"Broadcast request {request_id} hidden for {decliner.user_id}")
        return self._save(record, declined)

    def approve_pass_request(self, request_id: str, resolver: SimpleUser) -> PassRequest:
        """
        Approve the current claim and move the shift over.

        The roster change, the resolution and the cancellation of the other
        open requests on the shift are committed together.

        Raises:
            ResourceNotFoundError: If the request does not exist
            InvalidStatusTransitionError: If there is no open claim
            StalePreconditionError: If either user left their shift (the
                request is cancelled first)
            ConflictError: If the claimant is now double-booked (the request
                is cancelled first)
            ConcurrencyError: If the week changed while saving
        """
        record = self._get_record(request_id)
        request = rules.to_schema(record)
        payload = request.payload

        if not request.is_open:
            raise InvalidStatusTransitionError(request.status.value, "approve")
        if payload.taken_by is None:
            raise InvalidStatusTransitionError(
                request.status.value, "approve", message="Nobody has taken this request yet, nothing to approve."
            )

        schedule, shift = self._current_shift(payload.week_id, payload.shift_id)
        requester = shift.find_user(payload.requesting_user.user_id) if shift else None
        if requester is None:
            self._cancel_and_raise(record, request, rules.REASON_REQUESTER_LEFT)

        claimant = payload.taken_by
        if payload.is_swap_request:
            counterpart_id = payload.target_user_shift_payload.shift_id
            counterpart = schedule.find_shift(counterpart_id)
            claimant_there = counterpart.find_user(claimant.user_id) if counterpart else None
            if claimant_there is None:
                self._cancel_and_raise(record, request, rules.REASON_CLAIMANT_LEFT_COUNTERPART)

            new_origin = _replace_user(shift, requester.user_id, AssignedUser(
                user_id=claimant.user_id,
                user_name=claimant.user_name,
                assigned_role=claimant_there.assigned_role or requester.assigned_role
            ))
            new_counterpart = _replace_user(counterpart, claimant.user_id, AssignedUser(
                user_id=requester.user_id,
                user_name=requester.user_name,
                assigned_role=requester.assigned_role or claimant_there.assigned_role
            ))
            replaced = {shift.id: new_origin, counterpart.id: new_counterpart}
        else:
            conflict = rules.claimant_conflict(request, shift, schedule.shifts)
            if conflict is not None:
                self._save(record, rules.cancelled(request, rules.REASON_CLAIMANT_CONFLICT, at=self._timestamp()))
                logger.warning(f"Request {request_id} cancelled on approval: claimant overlaps {conflict.id}")
                raise ConflictError(claimant.user_name, conflict)

            new_origin = _replace_user(shift, requester.user_id, AssignedUser(
                user_id=claimant.user_id,
                user_name=claimant.user_name,
                assigned_role=claimant.assigned_role or requester.assigned_role
            ))
            replaced = {shift.id: new_origin}

        rules.ensure_transition(request.status, rules.RESOLVED, "approve")
        resolved = request.model_copy(update={
            "status": rules.RESOLVED,
            "resolved_by": resolver,
            "resolved_at": self._timestamp(),
        })
        cascaded = self._cascade_cancel(resolved, resolver)
        shifts = [replaced.get(s.id, s) for s in schedule.shifts]
        self._commit_with_schedule(record, resolved, schedule, shifts, cascaded)

        logger.info(
            f"Request {request_id} approved by {resolver.user_id}: "
            f"{requester.user_id} -> {claimant.user_id} on {shift.id}"
        )
        return resolved

    def reject_pass_request_approval(self, request_id: str, resolver: SimpleUser) -> PassRequest:
        """
        Reject the current claim and reopen the request for others.

        Raises:
            ResourceNotFoundError: If the request does not exist
            InvalidStatusTransitionError: If the request is not waiting for approval
        """
        record = self._get_record(request_id)
        request = rules.to_schema(record)

        if request.status != rules.PENDING_APPROVAL:
            raise InvalidStatusTransitionError(request.status.value, "reject")

        rules.ensure_transition(request.status, rules.PENDING, "reject")
        reopened = request.model_copy(update={
            "status": rules.PENDING,
            "payload": request.payload.model_copy(update={"taken_by": None}),
            "resolved_by": resolver,
            "resolved_at": self._timestamp(),
        })
        logger.info(f"Claim on request {request_id} rejected by {resolver.user_id}")
        return self._save(record, reopened)

    def revert_pass_request(self, request_id: str, resolver: SimpleUser) -> PassRequest:
        """
        Undo an approved request and put the requester back on the shift.

        For a swap the counterpart shift is restored as well.

        Raises:
            ResourceNotFoundError: If the request, week or shift does not exist
            InvalidStatusTransitionError: If the request is not resolved
            NotEligibleError: If the requester has since opened another
                request for the shift
        """
        record = self._get_record(request_id)
        request = rules.to_schema(record)
        payload = request.payload

        if request.status != rules.RESOLVED:
            raise InvalidStatusTransitionError(request.status.value, "revert")
        rules.ensure_transition(request.status, rules.PENDING, "revert")
        if self._open_record_for(payload.shift_id, payload.requesting_user.user_id) is not None:
            raise NotEligibleError(resolver.user_id, "The requester already has an open request for this shift.")

        schedule = self.store.get_or_raise(payload.week_id)
        shift = schedule.find_shift(payload.shift_id)
        if shift is None:
            raise ResourceNotFoundError("shift", payload.shift_id)

        claimant = payload.taken_by
        claimant_id = claimant.user_id if claimant else None
        replaced = {shift.id: _replace_user(shift, claimant_id, payload.requesting_user)}

        if payload.is_swap_request and claimant is not None:
            counterpart = schedule.find_shift(payload.target_user_shift_payload.shift_id)
            if counterpart is not None:
                replaced[counterpart.id] = _replace_user(counterpart, payload.requesting_user.user_id, claimant)

        reverted = request.model_copy(update={
            "status": rules.PENDING,
            "payload": payload.model_copy(update={"taken_by": None, "cancellation_reason": None}),
            "resolved_by": resolver,
            "resolved_at": None,
        })
        shifts = [replaced.get(s.id, s) for s in schedule.shifts]
        self._commit_with_schedule(record, reverted, schedule, shifts)

        logger.info(f"Request {request_id} reverted by {resolver.user_id}")
        return reverted

    def resolve_pass_request_by_assignment(
        self,
        request_id: str,
        assigned_user: SimpleUser,
        resolver: SimpleUser
    ) -> PassRequest:
        """
        Hand the shift straight to a chosen user, skipping the claim step.

        Raises:
            ResourceNotFoundError: If the request does not exist
            InvalidStatusTransitionError: If the request is no longer open
            StalePreconditionError: If the requester left the shift (the
                request is cancelled first)
            ConflictError: If the chosen user would be double-booked
        """
        record = self._get_record(request_id)
        request = rules.to_schema(record)
        payload = request.payload

        if not request.is_open:
            raise InvalidStatusTransitionError(request.status.value, "assign")

        schedule, shift = self._current_shift(payload.week_id, payload.shift_id)
        requester = shift.find_user(payload.requesting_user.user_id) if shift else None
        if requester is None:
            self._cancel_and_raise(record, request, rules.REASON_REQUESTER_LEFT)

        if shift.has_user(assigned_user.user_id):
            raise ConflictError(assigned_user.user_name, shift)
        conflict = find_conflict(assigned_user.user_id, shift, schedule.shifts_on(shift.date))
        if conflict is not None:
            raise ConflictError(assigned_user.user_name, conflict)

        taken_by = AssignedUser(
            user_id=assigned_user.user_id,
            user_name=assigned_user.user_name,
            assigned_role=requester.assigned_role
        )
        rules.ensure_transition(request.status, rules.RESOLVED, "assign")
        resolved = request.model_copy(update={
            "status": rules.RESOLVED,
            "payload": payload.model_copy(update={"taken_by": taken_by}),
            "resolved_by": resolver,
            "resolved_at": self._timestamp(),
        })
        cascaded = self._cascade_cancel(resolved, resolver)
        shifts = [_replace_user(s, requester.user_id, taken_by) if s.id == shift.id else s for s in schedule.shifts]
        self._commit_with_schedule(record, resolved, schedule, shifts, cascaded)

        logger.info(f"Request {request_id} assigned to {assigned_user.user_id} by {resolver.user_id}")
        return resolved

    def cancel_pass_request(self, request_id: str, resolver: SimpleUser) -> PassRequest:
        """
        Withdraw an open request, by its requester or by a manager.

        Raises:
            ResourceNotFoundError: If the request does not exist
            InvalidStatusTransitionError: If the request is no longer open
        """
        record = self._get_record(request_id)
        request = rules.to_schema(record)

        if not request.is_open:
            raise InvalidStatusTransitionError(request.status.value, "cancel")

        if resolver.user_id == request.payload.requesting_user.user_id:
            reason = rules.REASON_CANCELLED_BY_REQUESTER
        else:
            reason = rules.REASON_CANCELLED_BY_MANAGER
        withdrawn = rules.cancelled(request, reason, resolver=resolver, at=self._timestamp())

        logger.info(f"Request {request_id} cancelled by {resolver.user_id}")
        return self._save(record, withdrawn)

    def _expire(self, records: List[NotificationRecord]) -> List[PassRequest]:
        """Cancel open requests whose shift has started, then return all as schemas."""
        current_time = self.clock()
        requests = []
        expired = []

        for record in records:
            request = rules.to_schema(record)
            payload = request.payload
            if request.is_open:
                starts_at = timezone.localize(payload.shift_date, payload.shift_time_slot.start)
                if starts_at <= current_time:
                    request = rules.cancelled(request, rules.REASON_EXPIRED, at=self._timestamp())
                    rules.apply_to_record(record, request)
                    expired.append(request)
            requests.append(request)

        if expired:
            commit_or_raise(self.db, "request", ",".join(r.id for r in expired))
            logger.info(f"Expired {len(expired)} pass requests whose shift already started")
            self.feed.publish(rules.NOTIFICATIONS_FEED_KEY, expired)

        return requests

    def list_relevant_requests(self, user_id: str, role: Optional[str] = None) -> List[PassRequest]:
        """
        List the requests a staff member should see.

        Their own, targeted and claimed requests, plus the pending broadcasts
        they can claim. Requests whose shift has started are expired first.

        Args:
            user_id: Viewing user
            role: Role to match broadcasts on, in addition to the user's
                directory roles

        Returns:
            Requests, newest first
        """
        mine = self.db.query(NotificationRecord).filter(
            NotificationRecord.type == NotificationType.PASS_REQUEST,
            or_(
                NotificationRecord.requesting_user_id == user_id,
                NotificationRecord.target_user_id == user_id,
                NotificationRecord.taken_by_user_id == user_id
            )
        ).all()
        others = self.db.query(NotificationRecord).filter(
            NotificationRecord.type == NotificationType.PASS_REQUEST,
            NotificationRecord.status == rules.PENDING,
            NotificationRecord.requesting_user_id != user_id
        ).all()

        mine_ids = {r.id for r in mine}
        my_requests = self._expire(mine)
        other_requests = self._expire([r for r in others if r.id not in mine_ids])

        roles = [role] if role else []
        directory_user = self.directory.get_user(user_id)
        if directory_user is not None:
            roles.extend(r for r in directory_user.roles if r not in roles)

        return rules.merge_relevant_requests(my_requests, other_requests, user_id, roles)

    def list_all_requests(self) -> List[PassRequest]:
        """List every pass request for managers, newest first, after expiry."""
        records = self.db.query(NotificationRecord).filter(
            NotificationRecord.type == NotificationType.PASS_REQUEST
        ).all()
        requests = self._expire(records)
        return sorted(requests, key=lambda r: (r.created_at, r.id), reverse=True)
