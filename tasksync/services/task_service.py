"""
Task Sync - Task Service

Local task CRUD. Every mutation commits the task row together with one
outbox intent carrying the resulting snapshot.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from tasksync.database import utcnow
from tasksync.errors import ValidationError
from tasksync.models.task import SYNC_ERROR, SYNC_PENDING, Task
from tasksync.services.outbox import OutboxQueue

logger = logging.getLogger(__name__)


class TaskService:
    """Task record store plus the enqueue side effect of each mutation."""

    def __init__(self, db: Session, outbox: Optional[OutboxQueue] = None):
        self.db = db
        self.outbox = outbox or OutboxQueue(db)

    def create_task(self, title, description="", completed=False) -> Task:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title is required")

        now = utcnow()
        task = Task(
            id=str(uuid.uuid4()),
            title=title,
            description=description or "",
            completed=bool(completed),
            created_at=now,
            updated_at=now,
            is_deleted=False,
            sync_status=SYNC_PENDING,
            server_id=None,
            last_synced_at=None,
        )
        try:
            self.db.add(task)
            self.db.flush()
            self.outbox.enqueue(task.id, "create", task.to_dict(), commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Created task %s", task.id)
        return task

    def update_task(self, task_id, title=None, description=None, completed=None) -> Optional[Task]:
        task = self.get_task(task_id)
        if task is None:
            return None
        if title is not None and (not isinstance(title, str) or not title.strip()):
            raise ValidationError("Title cannot be empty")

        if title is not None:
            task.title = title
        if description is not None:
            task.description = description
        if completed is not None:
            task.completed = bool(completed)
        task.updated_at = max(utcnow(), task.updated_at or task.created_at)
        task.sync_status = SYNC_PENDING

        try:
            self.db.flush()
            self.outbox.enqueue(task.id, "update", task.to_dict(), commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Updated task %s", task.id)
        return task

    def delete_task(self, task_id) -> bool:
        """Soft-delete a task. Its queued intents keep draining."""
        task = self.get_task(task_id)
        if task is None:
            return False

        task.is_deleted = True
        task.updated_at = max(utcnow(), task.updated_at or task.created_at)
        task.sync_status = SYNC_PENDING

        try:
            self.db.flush()
            self.outbox.enqueue(task.id, "delete", task.to_dict(), commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Deleted task %s", task.id)
        return True

    def get_task(self, task_id) -> Optional[Task]:
        return (
            self.db.query(Task)
            .filter(Task.id == task_id, Task.is_deleted.is_(False))
            .first()
        )

    def get_all_tasks(self) -> List[Task]:
        return (
            self.db.query(Task)
            .filter(Task.is_deleted.is_(False))
            .order_by(Task.created_at.asc())
            .all()
        )

    def get_tasks_needing_sync(self) -> List[Task]:
        return (
            self.db.query(Task)
            .filter(
                Task.sync_status.in_([SYNC_PENDING, SYNC_ERROR]),
                Task.is_deleted.is_(False),
            )
            .all()
        )
