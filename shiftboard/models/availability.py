"""Availability model for staff-submitted free time."""
from sqlalchemy import Column, String, Date, DateTime, JSON
from datetime import datetime

from shiftboard.database import Base


class AvailabilityRecord(Base):
    """A user's available time ranges for one day, keyed "{date}_{userId}"."""
    
    __tablename__ = "availability"
    
    id = Column(String(64), primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False, index=True)
    week_id = Column(String(16), nullable=False, index=True)
    available_slots = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def __repr__(self) -> str:
        return f"<AvailabilityRecord(id={self.id})>"
