"""Notification model; pass requests are the notification type handled here."""
from sqlalchemy import Column, String, Integer, DateTime, Enum, Index, JSON, text
from datetime import datetime
import enum

from shiftboard.database import Base


class NotificationType(str, enum.Enum):
    """Notification type discriminator."""
    PASS_REQUEST = "pass_request"


class PassRequestStatus(str, enum.Enum):
    """Pass request status enumeration."""
    PENDING = "pending"
    PENDING_APPROVAL = "pending_approval"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    
    @property
    def is_open(self) -> bool:
        """Open requests still block a second request for the same shift and user."""
        return self in (PassRequestStatus.PENDING, PassRequestStatus.PENDING_APPROVAL)


OPEN_STATUSES = (PassRequestStatus.PENDING, PassRequestStatus.PENDING_APPROVAL)

OPEN_REQUEST_CLAUSE = text("status IN ('pending', 'pending_approval')")


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class NotificationRecord(Base):
    """Notification document.
    
    The full payload lives in the JSON column; the indexed columns duplicate
    the fields the workflow queries on.
    """
    
    __tablename__ = "notifications"
    
    id = Column(String(36), primary_key=True)
    type = Column(
        Enum(NotificationType, values_callable=_enum_values, name="notificationtype"),
        nullable=False,
        default=NotificationType.PASS_REQUEST,
        index=True
    )
    status = Column(
        Enum(PassRequestStatus, values_callable=_enum_values, name="passrequeststatus"),
        nullable=False,
        default=PassRequestStatus.PENDING,
        index=True
    )
    week_id = Column(String(16), nullable=False, index=True)
    shift_id = Column(String(128), nullable=False, index=True)
    requesting_user_id = Column(String(36), nullable=False, index=True)
    target_user_id = Column(String(36), nullable=True, index=True)
    taken_by_user_id = Column(String(36), nullable=True, index=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    resolved_by = Column(JSON, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False)
    
    __mapper_args__ = {"version_id_col": version}
    
    __table_args__ = (
        # At most one open request per shift and requester
        Index(
            "uq_notifications_open_request",
            "shift_id",
            "requesting_user_id",
            unique=True,
            sqlite_where=OPEN_REQUEST_CLAUSE,
            postgresql_where=OPEN_REQUEST_CLAUSE
        ),
    )
    
    def __repr__(self) -> str:
        return f"<NotificationRecord(id={self.id}, shift_id={self.shift_id}, status={self.status})>"
