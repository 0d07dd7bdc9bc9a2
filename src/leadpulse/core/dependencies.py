"""
Shared dependencies for FastAPI routes
"""
from typing import Generator

from leadpulse.database.session import get_session


def get_db() -> Generator:
    """
    Database session dependency.
    Yields a database session from the pool and ensures it's closed after use.
    """
    db = get_session()
    try:
        yield db
    finally:
        db.close()
