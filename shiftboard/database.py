"""Database connection and session management."""
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError
from typing import Generator
import logging

from shiftboard.config import settings
from shiftboard.exceptions import ConcurrencyError


logger = logging.getLogger(__name__)

# SQLite connections are shared between the request threads FastAPI runs sync
# handlers on
connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

# Create database engine
engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_recycle=settings.db_pool_recycle,
    connect_args=connect_args,
    echo=settings.debug
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.
    
    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Initialize database by creating all tables."""
    # Import models so they register on Base.metadata
    import shiftboard.models  # noqa: F401
    
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def _is_duplicate_key(error: IntegrityError) -> bool:
    """Whether an IntegrityError is a primary key or unique index collision."""
    orig = error.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is not None:
        return code == "23505"
    message = str(orig)
    return "UNIQUE constraint failed" in message or "duplicate key" in message


def commit_or_raise(db: Session, resource_type: str, resource_id: str) -> None:
    """
    Commit the session, translating a lost optimistic-concurrency race.
    
    A stale versioned row, or a duplicate key on a row someone else created
    first, is a race the caller may retry. Any other integrity failure is a
    bug and propagates unchanged.
    
    Args:
        db: Database session holding the pending changes
        resource_type: Document type named in the error
        resource_id: Document id named in the error
        
    Raises:
        ConcurrencyError: If the write lost a race with another writer
        IntegrityError: If the write breaks any other constraint
    """
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent write detected on {resource_type} {resource_id}: {e}")
        raise ConcurrencyError(resource_type, resource_id) from e
    except IntegrityError as e:
        db.rollback()
        if _is_duplicate_key(e):
            logger.warning(f"Concurrent create detected on {resource_type} {resource_id}: {e.orig}")
            raise ConcurrencyError(resource_type, resource_id) from e
        logger.error(f"Integrity error saving {resource_type} {resource_id}: {e.orig}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to save {resource_type} {resource_id}: {e}")
        raise
