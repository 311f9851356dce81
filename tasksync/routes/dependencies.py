"""
Task Sync - Route Dependencies
"""

from tasksync.database import SessionLocal
from tasksync.services.remote_client import RemoteClient


def get_db():
    """Dependency for database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_remote_client() -> RemoteClient:
    """Dependency for the remote authority client"""
    return RemoteClient()
