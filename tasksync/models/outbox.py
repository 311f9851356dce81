"""
Task Sync - Outbox Model

SQLAlchemy model for the sync_queue table.
Represents task mutations queued for delivery to the remote authority.
"""

from sqlalchemy import Column, BigInteger, Integer, String, Text, DateTime, Index
from tasksync.database import Base, utcnow

OPERATIONS = ("create", "update", "delete")


class SyncQueueItem(Base):
    """
    Outbox table model.

    Each row is one mutation intent carrying a JSON snapshot of the task at
    enqueue time. Rows are removed only after the remote authority confirms
    the operation; failures bump retry_count and keep the row.
    """
    __tablename__ = "sync_queue"

    # SQLite only autoincrements INTEGER PRIMARY KEY
    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    task_id = Column(String(64), nullable=False, index=True)
    operation = Column(String(16), nullable=False)
    data = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_sync_queue_pending", "retry_count", "created_at"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "operation": self.operation,
            "data": self.data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "retry_count": self.retry_count,
            "error_message": self.error_message,
        }
