"""Weekly schedule document model."""
from sqlalchemy import Column, String, Integer, DateTime, Enum, JSON
from datetime import datetime
import enum

from shiftboard.database import Base


class ScheduleStatus(str, enum.Enum):
    """Schedule status enumeration."""
    DRAFT = "draft"
    PROPOSED = "proposed"
    PUBLISHED = "published"


class ScheduleRecord(Base):
    """One roster document per ISO week, shifts stored as a JSON list."""
    
    __tablename__ = "schedules"
    
    week_id = Column(String(16), primary_key=True)
    status = Column(
        Enum(ScheduleStatus, values_callable=lambda e: [m.value for m in e], name="schedulestatus"),
        nullable=True
    )
    shifts = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Optimistic concurrency: every UPDATE checks and bumps the version
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self) -> str:
        return f"<ScheduleRecord(week_id={self.week_id}, status={self.status}, version={self.version})>"
