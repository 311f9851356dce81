"""
Task Sync - Task Model

SQLAlchemy model for the tasks table, the local record store.
"""

from sqlalchemy import Column, String, Text, Boolean, DateTime
from tasksync.database import Base, utcnow

SYNC_PENDING = "pending"
SYNC_SYNCED = "synced"
SYNC_ERROR = "error"


class Task(Base):
    """
    Task record with per-record sync status.

    Deleted tasks are only flagged (is_deleted) so that their queued
    intents can still drain and update sync_status.
    """
    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    sync_status = Column(String(16), nullable=False, default=SYNC_PENDING, index=True)
    server_id = Column(String(64), nullable=True)
    last_synced_at = Column(DateTime, nullable=True, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": bool(self.completed),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "is_deleted": bool(self.is_deleted),
            "sync_status": self.sync_status,
            "server_id": self.server_id,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }
