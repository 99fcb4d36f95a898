"""Weekly roster storage with pass request reconciliation."""
from sqlalchemy.orm import Session
from typing import Any, Callable, Collection, Dict, Iterable, List, Optional, Tuple
from datetime import date, datetime
import logging

from shiftboard.database import commit_or_raise
from shiftboard.exceptions import ConcurrencyError, ConflictError, ResourceNotFoundError
from shiftboard.models.availability import AvailabilityRecord
from shiftboard.models.notification import NotificationRecord, OPEN_STATUSES
from shiftboard.models.schedule import ScheduleRecord, ScheduleStatus
from shiftboard.schemas.pass_request import PassRequest, SimpleUser
from shiftboard.schemas.schedule import (
    AssignedShift,
    AssignedUser,
    Availability,
    Schedule,
    ShiftTemplate,
    TimeSlot,
)
from shiftboard.services.app_data import SHIFT_TEMPLATES_KEY, load_document, store_document
from shiftboard.services.change_feed import ChangeFeed
from shiftboard.services import pass_request_rules as rules
from shiftboard.utils.time_slots import ensure_valid_slot, find_conflict, merge_slots, parse_time
from shiftboard.utils.week import day_of_week, next_week_id, week_dates, week_id_for


logger = logging.getLogger(__name__)


class ScheduleStore:
    """Service owning the weekly roster documents."""

    def __init__(self, db: Session, feed: Optional[ChangeFeed] = None):
        """
        Initialize schedule store.

        Args:
            db: Database session
            feed: Change feed notified after each commit
        """
        self.db = db
        self.feed = feed or ChangeFeed()

    @staticmethod
    def feed_key(week_id: str) -> str:
        return f"schedules/{week_id}"

    def _get_record(self, week_id: str) -> Optional[ScheduleRecord]:
        return self.db.query(ScheduleRecord).filter(ScheduleRecord.week_id == week_id).first()

    @staticmethod
    def to_schema(record: ScheduleRecord) -> Schedule:
        return Schedule(
            week_id=record.week_id,
            status=record.status,
            shifts=[AssignedShift.model_validate(s) for s in (record.shifts or [])],
            version=record.version
        )

    def get(self, week_id: str) -> Optional[Schedule]:
        """
        Get the roster of a week.

        Returns:
            Schedule, or None if the week has no document yet
        """
        record = self._get_record(week_id)
        if record is None:
            return None
        return self.to_schema(record)

    def get_or_raise(self, week_id: str) -> Schedule:
        """
        Get the roster of a week.

        Raises:
            ResourceNotFoundError: If the week has no document
        """
        schedule = self.get(week_id)
        if schedule is None:
            raise ResourceNotFoundError("schedule", week_id)
        return schedule

    def get_for_date(self, day: date) -> Optional[Schedule]:
        """Get the roster of the week containing a date."""
        return self.get(week_id_for(day))

    def subscribe(self, week_id: str, callback: Callable[[Optional[Schedule]], None]) -> Callable[[], None]:
        """
        Watch a week's roster.

        The callback receives the current value straight away and then every
        committed change.

        Returns:
            A function that removes the listener
        """
        callback(self.get(week_id))
        return self.feed.subscribe(self.feed_key(week_id), callback)

    def publish(self, schedule: Schedule, changed_requests: Iterable[PassRequest] = ()) -> None:
        """Notify listeners of a committed roster and any requests it touched."""
        self.feed.publish(self.feed_key(schedule.week_id), schedule)
        changed_requests = list(changed_requests)
        if changed_requests:
            self.feed.publish(rules.NOTIFICATIONS_FEED_KEY, changed_requests)

    def stage_update(
        self,
        week_id: str,
        shifts: List[AssignedShift],
        status: Optional[ScheduleStatus] = None,
        skip_request_ids: Collection[str] = (),
        expected_version: Optional[int] = None
    ) -> Tuple[Schedule, List[PassRequest]]:
        """
        Write a roster into the session and reconcile the week's open requests.

        Nothing is committed; the caller commits the roster and the request
        changes together.

        Args:
            week_id: Week being written
            shifts: Complete new shift list
            status: New status, the stored one if None
            skip_request_ids: Requests the caller is already changing
            expected_version: Version of the stored document the shifts were
                derived from; None writes without checking

        Returns:
            Tuple of (staged schedule, reconciled requests)

        Raises:
            InvalidTimeSlotError: If a shift ends before it starts
            ConcurrencyError: If the stored document moved past expected_version
        """
        for shift in shifts:
            ensure_valid_slot(shift.time_slot)

        record = self._get_record(week_id)
        if expected_version is not None and (record is None or record.version != expected_version):
            logger.warning(
                f"Schedule {week_id} changed since it was read "
                f"(read version {expected_version}, stored {record.version if record else None})"
            )
            self.db.rollback()
            raise ConcurrencyError("schedule", week_id)

        open_records = self.db.query(NotificationRecord).filter(
            NotificationRecord.week_id == week_id,
            NotificationRecord.status.in_(OPEN_STATUSES)
        ).all()
        records_by_id: Dict[str, NotificationRecord] = {
            r.id: r for r in open_records
            if r.id not in skip_request_ids and r.status.is_open
        }

        changed = rules.reconcile_open_requests(
            [rules.to_schema(r) for r in records_by_id.values()],
            shifts
        )
        for request in changed:
            rules.apply_to_record(records_by_id[request.id], request)
            if request.status == rules.CANCELLED:
                logger.info(
                    f"Reconciliation cancelled request {request.id} in {week_id}: "
                    f"{request.payload.cancellation_reason}"
                )
            else:
                logger.info(f"Reconciliation released claim on request {request.id} in {week_id}")

        serialized = [s.model_dump(mode="json") for s in shifts]
        if record is None:
            record = ScheduleRecord(
                week_id=week_id,
                status=status,
                shifts=serialized,
                updated_at=datetime.utcnow()
            )
            self.db.add(record)
        else:
            record.shifts = serialized
            if status is not None:
                record.status = status
            record.updated_at = datetime.utcnow()

        # The version counter bumps by one when the write is flushed
        schedule = Schedule(
            week_id=week_id,
            status=record.status,
            shifts=shifts,
            version=(record.version or 0) + 1
        )
        return schedule, changed

    def update(self, week_id: str, partial: Dict[str, Any], expected_version: Optional[int] = None) -> Schedule:
        """
        Merge-write a week's roster.

        Args:
            week_id: Week to write
            partial: Any of "status" and "shifts"; missing keys keep their
                stored value
            expected_version: Version the partial was derived from; the
                version read here if None

        Returns:
            The saved schedule

        Raises:
            InvalidTimeSlotError: If a shift ends before it starts
            ConcurrencyError: If the week was written concurrently
        """
        current = self.get(week_id)
        if expected_version is None and current is not None:
            expected_version = current.version

        if "shifts" in partial and partial["shifts"] is not None:
            shifts = [AssignedShift.model_validate(s) for s in partial["shifts"]]
        else:
            shifts = current.shifts if current else []

        status = partial.get("status")
        if status is not None:
            status = ScheduleStatus(status)

        schedule, changed = self.stage_update(
            week_id,
            shifts,
            status=status,
            expected_version=expected_version
        )
        commit_or_raise(self.db, "schedule", week_id)

        logger.info(f"Schedule {week_id} saved ({len(shifts)} shifts, {len(changed)} requests reconciled)")
        self.publish(schedule, changed)
        return schedule

    def get_shift_templates(self) -> List[ShiftTemplate]:
        """Get the stored shift templates."""
        return [ShiftTemplate.model_validate(t) for t in load_document(self.db, SHIFT_TEMPLATES_KEY, [])]

    def update_shift_templates(self, templates: List[ShiftTemplate]) -> List[ShiftTemplate]:
        """
        Replace the stored shift templates.

        Raises:
            InvalidTimeSlotError: If a template ends before it starts
        """
        for template in templates:
            ensure_valid_slot(template.time_slot)
        store_document(self.db, SHIFT_TEMPLATES_KEY, [t.model_dump(mode="json") for t in templates])
        logger.info(f"Stored {len(templates)} shift templates")
        return templates

    def rollover_draft(self, from_week_id: str, templates: Optional[List[ShiftTemplate]] = None) -> Schedule:
        """
        Create next week's draft from shift templates.

        A week that already has a status is returned untouched; a week whose
        document has no status is only marked as draft, its shifts kept.

        Args:
            from_week_id: Week to roll over from
            templates: Templates to expand, the stored ones if None

        Returns:
            The target week's schedule
        """
        target_week_id = next_week_id(from_week_id)
        record = self._get_record(target_week_id)

        if record is not None and record.status is not None:
            logger.info(f"Rollover skipped: {target_week_id} already {record.status.value}")
            return self.to_schema(record)

        if record is not None:
            record.status = ScheduleStatus.DRAFT
            record.updated_at = datetime.utcnow()
            commit_or_raise(self.db, "schedule", target_week_id)
            schedule = self.to_schema(record)
            logger.info(f"Rollover marked existing {target_week_id} as draft")
            self.publish(schedule)
            return schedule

        if templates is None:
            templates = self.get_shift_templates()

        shifts: List[AssignedShift] = []
        for day in week_dates(target_week_id):
            weekday = day_of_week(day)
            for template in templates:
                if weekday not in template.applicable_days:
                    continue
                shifts.append(AssignedShift(
                    id=f"shift_{day.isoformat()}_{template.id}",
                    template_id=template.id,
                    date=day,
                    label=template.label,
                    role=template.role,
                    time_slot=template.time_slot,
                    min_users=template.min_users,
                    assigned_users=[]
                ))
        shifts.sort(key=lambda s: (s.date, parse_time(s.time_slot.start)))

        for shift in shifts:
            ensure_valid_slot(shift.time_slot)

        record = ScheduleRecord(
            week_id=target_week_id,
            status=ScheduleStatus.DRAFT,
            shifts=[s.model_dump(mode="json") for s in shifts],
            updated_at=datetime.utcnow()
        )
        self.db.add(record)
        commit_or_raise(self.db, "schedule", target_week_id)

        schedule = self.to_schema(record)
        logger.info(f"Rolled {from_week_id} over into draft {target_week_id} with {len(shifts)} shifts")
        self.publish(schedule)
        return schedule

    def add_staff_to_shift(self, week_id: str, shift_id: str, user: AssignedUser) -> Schedule:
        """
        Put a user on a shift.

        Adding a user who is already on the shift changes nothing.

        Raises:
            ResourceNotFoundError: If the week or the shift does not exist
            ConflictError: If the user already works an overlapping shift that day
        """
        schedule = self.get_or_raise(week_id)
        shift = schedule.find_shift(shift_id)
        if shift is None:
            raise ResourceNotFoundError("shift", shift_id)

        if shift.has_user(user.user_id):
            return schedule

        conflict = find_conflict(user.user_id, shift, schedule.shifts_on(shift.date))
        if conflict is not None:
            raise ConflictError(user.user_name, conflict)

        shifts = [
            s.model_copy(update={"assigned_users": [*s.assigned_users, user]}) if s.id == shift_id else s
            for s in schedule.shifts
        ]
        logger.info(f"Adding {user.user_id} to shift {shift_id} in {week_id}")
        return self.update(week_id, {"shifts": shifts}, expected_version=schedule.version)

    @staticmethod
    def _availability_schema(record: AvailabilityRecord) -> Availability:
        return Availability(
            user_id=record.user_id,
            user_name=record.user_name,
            date=record.date,
            available_slots=[TimeSlot.model_validate(s) for s in (record.available_slots or [])]
        )

    def save_availability(self, user: SimpleUser, day: date, slots: List[TimeSlot]) -> Availability:
        """
        Store a user's free time for a day, merged into non-overlapping runs.

        Args:
            user: User submitting availability
            day: Date the slots are for
            slots: Submitted ranges, invalid ones are dropped

        Returns:
            The stored availability
        """
        merged = merge_slots(slots)
        record_id = f"{day.isoformat()}_{user.user_id}"
        record = self.db.query(AvailabilityRecord).filter(AvailabilityRecord.id == record_id).first()

        if record is None:
            record = AvailabilityRecord(
                id=record_id,
                user_id=user.user_id,
                user_name=user.user_name,
                date=day,
                week_id=week_id_for(day)
            )
            self.db.add(record)

        record.user_name = user.user_name
        record.available_slots = [s.model_dump() for s in merged]
        record.updated_at = datetime.utcnow()
        commit_or_raise(self.db, "availability", record_id)

        logger.info(f"Saved availability {record_id} ({len(merged)} slots)")
        return self._availability_schema(record)

    def get_availability_for_week(self, week_id: str) -> List[Availability]:
        """Get every availability record of a week, ordered by date."""
        records = self.db.query(AvailabilityRecord).filter(
            AvailabilityRecord.week_id == week_id
        ).order_by(AvailabilityRecord.date.asc(), AvailabilityRecord.user_name.asc()).all()
        return [self._availability_schema(r) for r in records]

    def get_availability_for_date(self, day: date) -> List[Availability]:
        """Get every availability record of one day."""
        records = self.db.query(AvailabilityRecord).filter(AvailabilityRecord.date == day).all()
        return [self._availability_schema(r) for r in records]
