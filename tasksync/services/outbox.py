"""
Task Sync - Outbox Queue

Durable, ordered log of pending task mutations. Every write goes through
a single session handed in by the caller.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tasksync.database import utcnow
from tasksync.errors import InvalidIntentError, ValidationError
from tasksync.models.outbox import OPERATIONS, SyncQueueItem
from tasksync.schemas import encode_payload

logger = logging.getLogger(__name__)

# An intent with retry_count >= MAX_RETRIES is exhausted and no longer retried
MAX_RETRIES = 3

STATUS_PENDING = "pending"
STATUS_FAILED = "failed"


class OutboxQueue:
    """
    Queue of SyncQueueItem rows.

    Pending means retry_count < max_retries, failed means the budget is
    used up. Failed rows stay until they are reset or purged.
    """

    def __init__(self, db: Session, max_retries: int = MAX_RETRIES):
        self.db = db
        self.max_retries = max_retries

    def enqueue(self, task_id, operation, data, commit: bool = True) -> SyncQueueItem:
        """
        Append a new intent with retry_count 0.

        Args:
            task_id: Id of the task the mutation applies to
            operation: One of create, update, delete
            data: Snapshot of the task (dict) serialized at this moment
            commit: Commit immediately; pass False to join the caller's unit of work

        Raises:
            InvalidIntentError: if task_id, operation or data are unusable
        """
        if not isinstance(task_id, str) or not task_id.strip():
            raise InvalidIntentError(f"Invalid task id: {task_id!r}")
        if operation not in OPERATIONS:
            raise InvalidIntentError(f"Invalid operation: {operation!r}")
        try:
            serialized = encode_payload(data)
        except TypeError as e:
            raise InvalidIntentError(str(e)) from e

        item = SyncQueueItem(
            task_id=task_id,
            operation=operation,
            data=serialized,
            created_at=utcnow(),
            retry_count=0,
            error_message=None,
        )
        self.db.add(item)
        if commit:
            self.db.commit()
        else:
            self.db.flush()

        logger.debug("Queued %s for task %s (intent %s)", operation, task_id, item.id)
        return item

    def list_pending(self, max_retries: Optional[int] = None) -> List[SyncQueueItem]:
        """All intents still under the retry budget, oldest first."""
        max_retries = self.max_retries if max_retries is None else max_retries
        return (
            self.db.query(SyncQueueItem)
            .filter(SyncQueueItem.retry_count < max_retries)
            .order_by(SyncQueueItem.created_at.asc(), SyncQueueItem.id.asc())
            .all()
        )

    def list(self, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> List[SyncQueueItem]:
        """Page through the queue, newest first, optionally by status."""
        query = self._filter_status(self.db.query(SyncQueueItem), status)
        return (
            query
            .order_by(SyncQueueItem.created_at.desc(), SyncQueueItem.id.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )

    def get(self, item_id) -> Optional[SyncQueueItem]:
        return self.db.get(SyncQueueItem, item_id)

    def mark_failed(self, item, error_message: str) -> int:
        """Record a failed attempt; returns the new retry count."""
        item = self._resolve(item)
        item.retry_count = (item.retry_count or 0) + 1
        item.error_message = error_message
        item.updated_at = utcnow()
        self.db.commit()
        return item.retry_count

    def remove(self, item, commit: bool = True) -> int:
        """
        Delete an intent once its operation is confirmed remotely.

        Returns:
            Number of rows deleted; 0 if the intent was already purged
        """
        item_id = item.id if isinstance(item, SyncQueueItem) else item
        removed = (
            self.db.query(SyncQueueItem)
            .filter(SyncQueueItem.id == item_id)
            .delete(synchronize_session="evaluate")
        )
        if commit:
            self.db.commit()
        return removed

    def reset(self, ids: Optional[Iterable[int]] = None, all_failed: bool = False) -> int:
        """
        Give exhausted intents a fresh retry budget.

        Only rows with retry_count >= max_retries are touched; pending ids in
        `ids` are filtered out rather than rejected.

        Returns:
            Number of rows reset
        """
        if not all_failed and not ids:
            return 0

        query = self.db.query(SyncQueueItem).filter(
            SyncQueueItem.retry_count >= self.max_retries
        )
        if not all_failed:
            query = query.filter(SyncQueueItem.id.in_(list(ids)))

        changed = query.update(
            {
                "retry_count": 0,
                "error_message": None,
                "updated_at": utcnow(),
            },
            synchronize_session=False,
        )
        self.db.commit()
        return changed

    def count(self, status: Optional[str] = None) -> int:
        query = self._filter_status(self.db.query(func.count(SyncQueueItem.id)), status)
        return query.scalar() or 0

    def clear(self) -> int:
        """Delete every intent. Administrative escape hatch only."""
        removed = self.db.query(SyncQueueItem).delete(synchronize_session=False)
        self.db.commit()
        logger.warning("Cleared %d intents from the sync queue", removed)
        return removed

    def _resolve(self, item):
        if isinstance(item, SyncQueueItem):
            return item
        found = self.get(item)
        if found is None:
            raise LookupError(f"Sync queue item {item!r} not found")
        return found

    def _filter_status(self, query, status):
        if status == STATUS_FAILED:
            return query.filter(SyncQueueItem.retry_count >= self.max_retries)
        if status == STATUS_PENDING:
            return query.filter(SyncQueueItem.retry_count < self.max_retries)
        if status is not None:
            raise ValidationError(f"Unknown queue status: {status!r}")
        return query
