"""
Task Sync - Database Connection

SQLAlchemy setup for the local record store and outbox queue.
All queries use parameterized statements.
"""

import os
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from tasksync.config import settings

DATABASE_URL = settings.DATABASE_URL


def _connect_args(url: str) -> dict:
    # Sessions are handed to worker threads by FastAPI and the periodic pass
    if make_url(url).get_backend_name() == "sqlite":
        return {"check_same_thread": False}
    return {}


# Create engine with connection pooling
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,  # Verify connections before using
    connect_args=_connect_args(DATABASE_URL),
    echo=settings.DEBUG,  # Log SQL queries in debug mode
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def init_db(bind=None):
    """Create tables, making room for a SQLite file if needed."""
    bind = bind or engine
    url = bind.url
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        directory = os.path.dirname(os.path.abspath(url.database))
        os.makedirs(directory, exist_ok=True)

    # Register models on Base.metadata
    import tasksync.models  # noqa: F401

    Base.metadata.create_all(bind=bind)
