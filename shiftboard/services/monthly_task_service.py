"""Recurring task assignment resolution and completion records."""
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from datetime import date, datetime
from dateutil.relativedelta import relativedelta
import logging

from shiftboard.database import commit_or_raise
from shiftboard.exceptions import MissingFieldError
from shiftboard.models.monthly_task import TaskCompletionDocument
from shiftboard.schemas.monthly_task import (
    MediaAttachment,
    MonthlyTask,
    MonthlyTaskAssignment,
    ShiftResponsibleGroup,
    TaskCompletionRecord,
)
from shiftboard.schemas.pass_request import SimpleUser
from shiftboard.schemas.schedule import Schedule
from shiftboard.schemas.user import DirectoryUser
from shiftboard.services.app_data import MONTHLY_TASKS_KEY, load_document, store_document
from shiftboard.services.schedule_store import ScheduleStore
from shiftboard.services.user_directory import UserDirectory
from shiftboard.utils.recurrence import is_due
from shiftboard.utils.roles import effective_roles, is_all_roles, role_applies
from shiftboard.utils.time_slots import contains_time


logger = logging.getLogger(__name__)


def resolve_task_assignment(
    task: MonthlyTask,
    day: date,
    schedule: Optional[Schedule],
    users: Dict[str, DirectoryUser],
    completions: List[TaskCompletionRecord]
) -> MonthlyTaskAssignment:
    """
    Work out who is responsible for a task on one date.

    A shift counts when the task has no time of day or the time falls within
    the shift. Each assignee is responsible when the task is for all roles or
    their effective role on that shift matches.

    Args:
        task: Task definition, assumed due on day
        day: Date being resolved
        schedule: Roster of the week containing day, if any
        users: Directory users keyed by id
        completions: Completion records of day, any task

    Returns:
        Assignment with responsible users grouped by shift and the task's
        completions split by whether a responsible user made them
    """
    groups: List[ShiftResponsibleGroup] = []
    responsible_ids: List[str] = []

    shifts = schedule.shifts_on(day) if schedule else []
    for shift in shifts:
        if task.time_of_day and not contains_time(shift.time_slot, task.time_of_day):
            continue

        group = ShiftResponsibleGroup(shift_id=shift.id, shift_label=shift.label, users=[])
        for assigned in shift.assigned_users:
            roles = effective_roles(assigned, users.get(assigned.user_id))
            if not role_applies(task.applies_to_role, roles):
                continue
            group.users.append(assigned)
            if assigned.user_id not in responsible_ids:
                responsible_ids.append(assigned.user_id)

        if group.users:
            groups.append(group)

    task_completions = [c for c in completions if c.task_id == task.id]
    responsible = set(responsible_ids)

    return MonthlyTaskAssignment(
        task_id=task.id,
        task_name=task.name,
        description=task.description,
        assigned_date=day,
        applies_to_role=task.applies_to_role,
        responsible_users_by_shift=groups,
        responsible_user_ids=responsible_ids,
        completions=[c for c in task_completions if c.completed_by and c.completed_by.user_id in responsible],
        other_completions=[c for c in task_completions if not c.completed_by or c.completed_by.user_id not in responsible]
    )


class MonthlyTaskService:
    """Service for recurring task definitions, assignments and completions."""

    def __init__(self, db: Session):
        """
        Initialize monthly task service.

        Args:
            db: Database session
        """
        self.db = db
        self.store = ScheduleStore(db)
        self.directory = UserDirectory(db)

    def get_tasks(self) -> List[MonthlyTask]:
        """Get all recurring task definitions."""
        return [MonthlyTask.model_validate(t) for t in load_document(self.db, MONTHLY_TASKS_KEY, [])]

    def set_tasks(self, tasks: List[MonthlyTask]) -> List[MonthlyTask]:
        """Replace all recurring task definitions."""
        store_document(self.db, MONTHLY_TASKS_KEY, [t.model_dump(mode="json") for t in tasks])
        logger.info(f"Stored {len(tasks)} monthly tasks")
        return tasks

    def _build(self, day: date) -> List[MonthlyTaskAssignment]:
        schedule = self.store.get_for_date(day)
        users = self.directory.users_by_id()
        completions = self.get_completions_for_day(day)

        return [
            resolve_task_assignment(task, day, schedule, users, completions)
            for task in self.get_tasks()
            if is_due(task, day)
        ]

    def resolve_assignments(self, day: date) -> List[MonthlyTaskAssignment]:
        """
        Owner view of the tasks due on a date.

        Tasks nobody is responsible for and nobody reported on are left out.
        """
        return [
            a for a in self._build(day)
            if a.responsible_users_by_shift or a.other_completions
        ]

    def resolve_assignments_for_staff(self, day: date, user_id: str) -> List[MonthlyTaskAssignment]:
        """
        Staff view of the tasks due on a date.

        Only tasks the user is related to are returned: they are responsible,
        the task is for one of their roles, or they reported on it. An
        unknown user gets nothing.
        """
        user = self.directory.get_user(user_id)
        if user is None:
            return []

        related = []
        for assignment in self._build(day):
            reported = any(
                c.completed_by and c.completed_by.user_id == user_id
                for c in [*assignment.completions, *assignment.other_completions]
            )
            matches_role = is_all_roles(assignment.applies_to_role) or assignment.applies_to_role in user.roles
            if user_id in assignment.responsible_user_ids or matches_role or reported:
                related.append(assignment)
        return related

    def _document_id(self, date_key: str, user_id: str) -> str:
        return f"{date_key}_{user_id}"

    def _get_document(self, date_key: str, user_id: str) -> Optional[TaskCompletionDocument]:
        return self.db.query(TaskCompletionDocument).filter(
            TaskCompletionDocument.id == self._document_id(date_key, user_id)
        ).first()

    @staticmethod
    def _records(document: TaskCompletionDocument) -> List[TaskCompletionRecord]:
        return [TaskCompletionRecord.model_validate(c) for c in (document.completions or [])]

    def get_completions_for_day(self, day: date) -> List[TaskCompletionRecord]:
        """Get every user's completion records for a date."""
        documents = self.db.query(TaskCompletionDocument).filter(
            TaskCompletionDocument.date_key == day.isoformat()
        ).all()
        records = []
        for document in documents:
            records.extend(self._records(document))
        return records

    def get_completions_for_month(self, year: int, month: int) -> List[TaskCompletionRecord]:
        """
        Get all completion records of a month.

        Raises:
            ValueError: If month is not between 1 and 12
        """
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")

        first_day = date(year, month, 1)
        next_month = first_day + relativedelta(months=1)
        documents = self.db.query(TaskCompletionDocument).filter(
            TaskCompletionDocument.date_key >= first_day.isoformat(),
            TaskCompletionDocument.date_key < next_month.isoformat()
        ).order_by(TaskCompletionDocument.date_key.asc()).all()

        records = []
        for document in documents:
            records.extend(self._records(document))
        return records

    def _write(self, document: Optional[TaskCompletionDocument], date_key: str, user_id: str,
               records: List[TaskCompletionRecord]) -> None:
        document_id = self._document_id(date_key, user_id)
        serialized = [r.model_dump(mode="json") for r in records]

        if not records:
            if document is not None:
                self.db.delete(document)
        elif document is None:
            self.db.add(TaskCompletionDocument(
                id=document_id,
                date_key=date_key,
                user_id=user_id,
                completions=serialized,
                updated_at=datetime.utcnow()
            ))
        else:
            document.completions = serialized
            document.updated_at = datetime.utcnow()

        commit_or_raise(self.db, "task completion", document_id)

    def update_completion_status(
        self,
        task_id: str,
        task_name: str,
        user: SimpleUser,
        day: date,
        is_completed: bool,
        media: Optional[List[MediaAttachment]] = None,
        note: Optional[str] = None
    ) -> Optional[TaskCompletionRecord]:
        """
        Mark, unmark or annotate a user's task for a date.

        The first completion or note creates the record. Unmarking drops the
        media unless a note comes with it, and removes the record entirely
        when no note is left.

        Args:
            task_id: Task being reported on
            task_name: Task name stored with the record
            user: Reporting user
            day: Date the task was due
            is_completed: Whether the task is done
            media: Attachments added on completion
            note: Free-text note

        Returns:
            The stored record, or None if there is none left

        Raises:
            MissingFieldError: If task_id, task_name or user id is empty
        """
        if not task_id:
            raise MissingFieldError("task_id")
        if not task_name:
            raise MissingFieldError("task_name")
        if not user or not user.user_id:
            raise MissingFieldError("user_id")

        date_key = day.isoformat()
        document = self._get_document(date_key, user.user_id)
        records = self._records(document) if document else []
        index = next((i for i, r in enumerate(records) if r.task_id == task_id), None)
        now = datetime.utcnow()

        if index is None:
            if not is_completed and not note:
                return None
            record = TaskCompletionRecord(
                task_id=task_id,
                task_name=task_name,
                completed_by=user,
                assigned_date=day,
                completed_at=now if is_completed else None,
                media=list(media) if media else None,
                note=note or None,
                note_created_at=now if note else None
            )
            records.append(record)
        else:
            current = records[index]
            update = {"note": note if note is not None else current.note}
            if note:
                update["note_created_at"] = now
            if is_completed:
                update["completed_at"] = now
                update["media"] = [*(current.media or []), *(media or [])]
            else:
                if not note:
                    update["media"] = None
                if not update["note"]:
                    update["note_created_at"] = None
            record = current.model_copy(update=update)

            if not is_completed and not record.note:
                records.pop(index)
                record = None
            else:
                records[index] = record

        self._write(document, date_key, user.user_id, records)
        logger.info(
            f"Task {task_id} on {date_key} for {user.user_id}: "
            f"{'completed' if is_completed else 'not completed'}{', note' if note else ''}"
        )
        return record

    def delete_completion(self, task_id: str, user_id: str, date_key: str) -> bool:
        """
        Remove one completion record.

        Returns:
            False if there was no such record
        """
        document = self._get_document(date_key, user_id)
        if document is None:
            logger.warning(f"Completion document not found for {date_key}_{user_id}")
            return False

        records = self._records(document)
        remaining = [r for r in records if r.task_id != task_id]
        if len(remaining) == len(records):
            logger.warning(f"Completion for task {task_id} not found in {date_key}_{user_id}")
            return False

        self._write(document, date_key, user_id, remaining)
        logger.info(f"Deleted completion of task {task_id} in {date_key}_{user_id}")
        return True
