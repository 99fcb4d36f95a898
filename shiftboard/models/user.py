"""User model backing the user directory."""
from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime

from shiftboard.database import Base


class User(Base):
    """User model representing staff members and managers."""
    
    __tablename__ = "users"
    
    id = Column(String(36), primary_key=True)
    display_name = Column(String(255), nullable=False)
    role = Column(String(64), nullable=False, index=True)
    secondary_roles = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.display_name}, role={self.role})>"
    
    def validate(self) -> None:
        """Validate user data."""
        if not self.id:
            raise ValueError("User ID is required")
        if not self.display_name:
            raise ValueError("Display name is required")
        if not self.role:
            raise ValueError("Role is required")
