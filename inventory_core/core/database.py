"""
Inventory Database Configuration
SQLAlchemy setup and the unit of work every command runs inside
"""
from contextlib import contextmanager
from typing import Iterator
import logging

from sqlalchemy import create_engine, MetaData, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError

from .config import settings
from .exceptions import ConcurrentModificationError

logger = logging.getLogger("inventory.database")

_engine_kwargs = {"pool_pre_ping": True, "echo": settings.DEBUG}
if not settings.DATABASE_URL.startswith("sqlite"):
    _engine_kwargs.update(
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_recycle=3600,  # Recycle connections after 1 hour
    )

engine = create_engine(settings.DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Metadata with naming convention for constraints
Base = declarative_base(metadata=MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}))

_DEPTH_KEY = "unit_of_work_depth"


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Atomic multi-write scope.

    Nested scopes join the outermost one; only the outermost commits. Any
    exception rolls back every write made inside the outermost scope and is
    re-raised. Version conflicts and racing inserts on a unique key surface
    as ConcurrentModificationError.
    """
    depth = db.info.get(_DEPTH_KEY, 0)
    db.info[_DEPTH_KEY] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
    except (StaleDataError, IntegrityError) as e:
        if depth == 0:
            db.rollback()
        logger.warning(f"Unit of work aborted on conflicting write: {e}")
        raise ConcurrentModificationError(
            "Record was modified by another transaction; retry the operation"
        ) from e
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info[_DEPTH_KEY] = depth


def init_db(bind=None):
    """
    Initialize database tables

    Imports every model so it is registered with Base before create_all.
    """
    from inventory_core import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def check_db_connection() -> bool:
    """
    Check if database connection is working

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
