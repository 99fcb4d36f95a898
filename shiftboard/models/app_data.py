"""Key/value configuration documents (monthly tasks, shift templates)."""
from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime

from shiftboard.database import Base


class AppData(Base):
    """A named JSON configuration document."""
    
    __tablename__ = "app_data"
    
    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def __repr__(self) -> str:
        return f"<AppData(key={self.key})>"
