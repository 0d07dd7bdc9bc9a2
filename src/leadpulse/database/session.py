"""
Database session management
"""
from sqlalchemy.orm import sessionmaker, Session
from typing import Optional

from leadpulse.database.connection import DatabasePool
from leadpulse.database.models.base import Base


# Session factory - will be initialized after pool is ready
SessionLocal: Optional[sessionmaker] = None


def init_session_factory() -> None:
    """
    Initialize the session factory with the database engine.
    Should be called after DatabasePool.initialize()
    """
    global SessionLocal
    if SessionLocal is None:
        engine = DatabasePool.get_engine()
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def reset_session_factory() -> None:
    """Drop the session factory so it is rebuilt against a fresh pool"""
    global SessionLocal
    SessionLocal = None


def init_db() -> None:
    """
    Initialize database tables.
    Creates every table defined in models that does not exist yet.
    """
    engine = DatabasePool.get_engine()
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    """
    Get a new database session from the pool.
    Use this for manual session management outside of FastAPI dependencies.

    Raises:
        RuntimeError: If session factory is not initialized
    """
    if SessionLocal is None:
        init_session_factory()

    if SessionLocal is None:
        raise RuntimeError("Session factory not initialized. Call DatabasePool.initialize() first.")

    return SessionLocal()
