"""Pytest configuration and fixtures for tests."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from datetime import date, datetime
from typing import Generator, List, Optional
from contextlib import contextmanager

from shiftboard.database import Base
import shiftboard.models  # noqa: F401
from shiftboard.schemas.schedule import AssignedShift, AssignedUser, TimeSlot
from shiftboard.schemas.pass_request import SimpleUser
from shiftboard.schemas.user import DirectoryUser
from shiftboard.services.schedule_store import ScheduleStore
from shiftboard.services.user_directory import UserDirectory
from shiftboard.utils import timezone


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a test database session for each test.
    Uses an in-memory SQLite database for fast testing.
    """
    # Create in-memory SQLite database for testing
    engine = create_engine("sqlite:///:memory:", echo=False)

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@contextmanager
def get_test_db_session():
    """
    Context manager for creating test database sessions.
    Used for property-based tests where fixtures don't work well.
    """
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(bind=engine)
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


# A Monday in ISO week 2024-W24
SHIFT_DAY = date(2024, 6, 10)
WEEK_ID = "2024-W24"


def fixed_clock(year=2024, month=6, day=1, hour=8, minute=0):
    """Clock frozen at a wall-clock time in the roster timezone."""
    moment = timezone.get_timezone().localize(datetime(year, month, day, hour, minute))
    return lambda: moment


def make_user(user_id: str, name: Optional[str] = None, role: Optional[str] = None) -> AssignedUser:
    return AssignedUser(user_id=user_id, user_name=name or user_id.upper(), assigned_role=role)


def actor(user_id: str) -> SimpleUser:
    return SimpleUser(user_id=user_id, user_name=user_id.upper())


def make_shift(
    shift_id: str,
    start: str,
    end: str,
    users: List[str] = (),
    day: date = SHIFT_DAY,
    role: str = "Phục vụ",
    label: Optional[str] = None
) -> AssignedShift:
    return AssignedShift(
        id=shift_id,
        template_id=f"tpl_{shift_id}",
        date=day,
        label=label or shift_id,
        role=role,
        time_slot=TimeSlot(start=start, end=end),
        min_users=1,
        assigned_users=[make_user(u) for u in users]
    )


def seed_schedule(db: Session, shifts: List[AssignedShift], week_id: str = WEEK_ID):
    """Store a roster directly and return it."""
    return ScheduleStore(db).update(week_id, {"status": "published", "shifts": shifts})


def seed_users(db: Session, *users):
    """Add (id, role, secondary_roles) tuples to the directory."""
    directory = UserDirectory(db)
    for user_id, role, *rest in users:
        directory.save_user(DirectoryUser(
            id=user_id,
            display_name=user_id.upper(),
            role=role,
            secondary_roles=rest[0] if rest else []
        ))
