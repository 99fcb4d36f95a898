"""Access to named JSON configuration documents."""
from sqlalchemy.orm import Session
from typing import Any, Optional
from datetime import datetime

from shiftboard.models.app_data import AppData


MONTHLY_TASKS_KEY = "monthlyTasks"
SHIFT_TEMPLATES_KEY = "shiftTemplates"


def load_document(db: Session, key: str, default: Any = None) -> Any:
    """Return the JSON value stored under key, or default."""
    record = db.query(AppData).filter(AppData.key == key).first()
    if record is None:
        return default
    return record.value


def store_document(db: Session, key: str, value: Any) -> None:
    """Replace the JSON value stored under key and commit."""
    record: Optional[AppData] = db.query(AppData).filter(AppData.key == key).first()
    if record is None:
        record = AppData(key=key, value=value, updated_at=datetime.utcnow())
        db.add(record)
    else:
        record.value = value
        record.updated_at = datetime.utcnow()
    
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
