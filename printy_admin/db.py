"""
Database connection management.

A single engine is built from DATABASE_URL (see config.py). Routes receive the
session factory through the get_session_factory() dependency; tests override
that dependency with a factory bound to an in-memory SQLite database.

Environment variables:
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./printy_admin.db)
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .config import DATABASE_URL
from .models import Base

# SQLite connections are used from FastAPI's worker threads
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    echo=False,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db() -> None:
    """Create the record tables if they do not exist yet."""
    Base.metadata.create_all(bind=engine)


def get_session_factory() -> sessionmaker:
    """
    FastAPI dependency returning the session factory.

    Conversations outlive a request, so the record store opens its own
    short-lived sessions instead of borrowing the request's.
    """
    return SessionLocal
