"""Monthly task completion document model."""
from sqlalchemy import Column, String, Integer, DateTime, JSON
from datetime import datetime

from shiftboard.database import Base


class TaskCompletionDocument(Base):
    """All of one user's task completions for one day, keyed "{date}_{userId}"."""
    
    __tablename__ = "monthly_task_completions"
    
    id = Column(String(64), primary_key=True)
    date_key = Column(String(10), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    completions = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self) -> str:
        return f"<TaskCompletionDocument(id={self.id}, completions={len(self.completions or [])})>"
