"""Custom exceptions and error handling for the roster and shift-exchange system.

Every error carries a user-facing message, a machine-readable code and the
HTTP status the API answers with.
"""
from typing import Optional, Dict, Any


class ValidationError(Exception):
    """Base class for domain errors with user-friendly messages."""

    status_code: int = 400

    def __init__(self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize validation error.

        Args:
            message: User-friendly error message
            error_code: Machine-readable error code
            details: Optional additional error details
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary format for API responses.

        Returns:
            Dictionary with error information
        """
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


class StalePreconditionError(ValidationError):
    """Error raised when a user is no longer on the shift an operation expects.

    The affected pass request has already been cancelled with the same
    reason when this is raised.
    """

    status_code = 409

    def __init__(self, reason: str, request_id: Optional[str] = None):
        """
        Initialize stale precondition error.

        Args:
            reason: Human-readable reason, identical to the cancellation reason
            request_id: ID of the cancelled pass request, if any
        """
        super().__init__(
            message=reason,
            error_code="STALE_PRECONDITION",
            details={"request_id": request_id, "reason": reason}
        )
        self.reason = reason
        self.request_id = request_id


class ConflictError(ValidationError):
    """Error raised when an assignment would overlap another shift of the same user."""

    status_code = 409

    def __init__(self, user_name: str, conflicting_shift: Any):
        """
        Initialize conflict error.

        Args:
            user_name: Display name of the user who would be double-booked
            conflicting_shift: The AssignedShift that overlaps
        """
        slot = conflicting_shift.time_slot
        message = (
            f"{user_name} is already assigned to \"{conflicting_shift.label}\" "
            f"({slot.start} - {slot.end}) on {conflicting_shift.date.isoformat()}, "
            f"which overlaps this shift."
        )
        super().__init__(
            message=message,
            error_code="SHIFT_CONFLICT",
            details={
                "user_name": user_name,
                "conflicting_shift_id": conflicting_shift.id,
                "conflicting_shift_label": conflicting_shift.label,
                "conflicting_time_slot": f"{slot.start}-{slot.end}"
            }
        )
        self.conflicting_shift = conflicting_shift


class ConcurrencyError(ValidationError):
    """Error raised when an optimistic write lost a race.

    The caller should re-run the whole operation from scratch.
    """

    status_code = 409

    def __init__(self, resource_type: str, resource_id: str):
        """
        Initialize concurrency error.

        Args:
            resource_type: Type of the document that changed underneath us
            resource_id: ID of that document
        """
        super().__init__(
            message=(
                f"The {resource_type} was changed by someone else while saving. "
                f"Please reload and try again."
            ),
            error_code="CONCURRENT_WRITE",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
                "retryable": True
            }
        )


class ResourceNotFoundError(ValidationError):
    """Error raised when a requested resource is not found."""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        """
        Initialize resource not found error.

        Args:
            resource_type: Type of resource (e.g., "schedule", "request", "shift")
            resource_id: ID of the resource
        """
        resource_types = {
            "schedule": "Schedule",
            "request": "Pass request",
            "shift": "Shift",
            "user": "User",
            "task": "Monthly task"
        }

        resource_display = resource_types.get(resource_type, resource_type)
        message = f"{resource_display} not found (ID: {resource_id})."

        super().__init__(
            message=message,
            error_code="RESOURCE_NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id
            }
        )


NotFoundError = ResourceNotFoundError


class InvalidStatusTransitionError(ValidationError):
    """Error raised when attempting an invalid status transition."""

    def __init__(self, current_status: str, attempted_action: str, message: Optional[str] = None):
        """
        Initialize invalid status transition error.

        Args:
            current_status: Current status of the request
            attempted_action: Action that was attempted (e.g., "accept", "approve")
            message: Optional override for the default message
        """
        status_names = {
            "pending": "pending",
            "pending_approval": "waiting for approval",
            "resolved": "resolved",
            "cancelled": "cancelled"
        }

        current_status_display = status_names.get(current_status, current_status)
        if message is None:
            message = (
                f"This request cannot be {attempted_action}ed any more.\n"
                f"Current status: {current_status_display}"
            )

        super().__init__(
            message=message,
            error_code="INVALID_STATUS_TRANSITION",
            details={
                "current_status": current_status,
                "attempted_action": attempted_action
            }
        )


class NotEligibleError(ValidationError):
    """Error raised when a user may not act on a pass request."""

    status_code = 403

    def __init__(self, user_id: str, reason: str):
        """
        Initialize not eligible error.

        Args:
            user_id: ID of the user who attempted the action
            reason: Why the user is not eligible
        """
        super().__init__(
            message=reason,
            error_code="NOT_ELIGIBLE",
            details={"user_id": user_id, "reason": reason}
        )


class MissingFieldError(ValidationError):
    """Error raised when a required field is missing."""

    def __init__(self, field_name: str):
        """
        Initialize missing field error.

        Args:
            field_name: Name of the missing field
        """
        field_names = {
            "target_shift": "The counterpart shift",
            "task_id": "Task ID",
            "task_name": "Task name",
            "user_id": "User ID"
        }

        field_display = field_names.get(field_name, field_name)
        message = f"{field_display} is required."

        super().__init__(
            message=message,
            error_code="MISSING_FIELD",
            details={"field_name": field_name}
        )


class InvalidTimeSlotError(ValidationError):
    """Error raised for a time slot whose end is not after its start."""

    def __init__(self, start: str, end: str):
        """
        Initialize invalid time slot error.

        Args:
            start: Slot start ("HH:MM")
            end: Slot end ("HH:MM")
        """
        super().__init__(
            message=(
                f"Invalid time slot {start} - {end}: the end must be after the start. "
                f"Overnight shifts are not supported."
            ),
            error_code="INVALID_TIME_SLOT",
            details={"start": start, "end": end}
        )


def format_error_for_api(error: ValidationError) -> Dict[str, Any]:
    """
    Format validation error for API response.

    Args:
        error: Validation error to format

    Returns:
        Dictionary suitable for JSON API response
    """
    return error.to_dict()
