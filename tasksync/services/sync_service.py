"""
Task Sync - Reconciliation Service

Drains the outbox in enqueue order, applies each intent on the remote
authority and reflects the outcome on the local task record.
"""

import logging
import threading
from typing import Iterable, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import ObjectDeletedError, StaleDataError

from tasksync.database import SessionLocal, utcnow
from tasksync.errors import StorageError, ValidationError
from tasksync.models.outbox import SyncQueueItem
from tasksync.models.task import SYNC_ERROR, SYNC_SYNCED, Task
from tasksync.schemas import BatchItem, decode_payload
from tasksync.services.outbox import STATUS_FAILED, STATUS_PENDING, OutboxQueue
from tasksync.services.remote_client import RemoteClient

logger = logging.getLogger(__name__)

# One pass at a time per process; manual and periodic triggers share it
_pass_lock = threading.Lock()

# Raised when an intent row is purged by another session mid-pass
VANISHED = (ObjectDeletedError, StaleDataError)

# Status fields fall back to a default on these
STATUS_ERRORS = (SQLAlchemyError, httpx.HTTPError, httpx.InvalidURL, ValueError)


class SyncService:
    """
    Service for reconciling queued task mutations with the remote.

    A pass takes a snapshot of the pending intents, processes them one by
    one in FIFO order, and reports how many were synced and how many failed.
    A failing intent never stops the pass; a storage fault does.
    """

    def __init__(
        self,
        db: Session,
        remote: Optional[RemoteClient] = None,
        outbox: Optional[OutboxQueue] = None,
        pass_lock: Optional[threading.Lock] = None,
    ):
        self.db = db
        self.remote = remote or RemoteClient()
        self.outbox = outbox or OutboxQueue(db)
        self.max_retries = self.outbox.max_retries
        self.pass_lock = pass_lock or _pass_lock

    def sync(self) -> dict:
        """
        Run one reconciliation pass.

        Returns:
            Dictionary with success, synced_count, failed_count and a
            details map keyed by intent id
        """
        if not self.pass_lock.acquire(blocking=False):
            logger.warning("Sync requested while another pass is running")
            return _result(False, 0, 0, {"message": "Sync already in progress"})
        try:
            return self._run_pass()
        finally:
            self.pass_lock.release()

    def _run_pass(self) -> dict:
        try:
            items = self.outbox.list_pending(self.max_retries)
        except Exception as e:
            self.db.rollback()
            logger.exception("Sync pass aborted: could not read the sync queue")
            return _result(False, 0, 0, {"error": str(e)})

        if not items:
            return _result(True, 0, 0, {"message": "No items to sync"})

        logger.info("Starting sync pass over %d queued operations", len(items))

        synced_count = 0
        failed_count = 0
        details = {}

        try:
            for item in items:
                # Identity is known without a refresh, so it survives a purge
                item_id = inspect(item).identity[0]
                try:
                    task_id = item.task_id
                    try:
                        self._process_item(item)
                    except VANISHED:
                        raise
                    except (SQLAlchemyError, StorageError):
                        raise
                    except Exception as e:
                        # Log error but continue processing
                        message = self._handle_sync_error(item, task_id, e)
                        failed_count += 1
                        details[item_id] = {"status": "error", "task_id": task_id, "error": message}
                    else:
                        synced_count += 1
                        details[item_id] = {"status": "success", "task_id": task_id}
                except VANISHED:
                    self.db.rollback()
                    logger.warning(
                        "Intent %s was removed from the sync queue during the pass; skipping",
                        item_id,
                    )
        except (SQLAlchemyError, StorageError) as e:
            self.db.rollback()
            logger.exception(
                "Sync pass aborted after %d synced and %d failed", synced_count, failed_count
            )
            details["error"] = str(e)
            return _result(False, synced_count, failed_count, details)

        logger.info("Sync pass finished: %d synced, %d failed", synced_count, failed_count)
        return _result(failed_count == 0, synced_count, failed_count, details)

    def _process_item(self, item: SyncQueueItem):
        item_id, operation, task_id = item.id, item.operation, item.task_id
        logger.debug("Processing sync item %s: %s task %s", item_id, operation, task_id)

        payload = decode_payload(item.data)
        self.remote.apply(operation, payload, task_id)

        try:
            self._mark_synced(item_id, task_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.critical(
                "Sync anomaly: %s of task %s was applied remotely but intent %s "
                "could not be settled locally: %s",
                operation, task_id, item_id, e,
            )
            raise StorageError(str(e)) from e

    def _mark_synced(self, item_id, task_id):
        task = self.db.get(Task, task_id)
        if task is not None:
            task.sync_status = SYNC_SYNCED
            task.last_synced_at = utcnow()
        else:
            logger.warning("Task %s for intent %s no longer exists locally", task_id, item_id)
        if not self.outbox.remove(item_id, commit=False):
            logger.warning("Intent %s was already gone from the sync queue", item_id)
        self.db.commit()

    def _handle_sync_error(self, item: SyncQueueItem, task_id, error: Exception) -> str:
        item_id, operation = item.id, item.operation
        message = str(error) or type(error).__name__
        retry_count = self.outbox.mark_failed(item, message)
        logger.warning(
            "Failed to sync %s of task %s (attempt %d/%d): %s",
            operation, task_id, retry_count, self.max_retries, message,
        )

        if retry_count >= self.max_retries:
            task = self.db.get(Task, task_id)
            if task is not None:
                task.sync_status = SYNC_ERROR
                self.db.commit()
            logger.error("Intent %s for task %s exhausted its retries", item_id, task_id)
        return message

    def check_connectivity(self) -> bool:
        return self.remote.probe_connectivity()

    def get_last_sync_time(self) -> Optional[str]:
        last = (
            self.db.query(Task.last_synced_at)
            .filter(Task.last_synced_at.isnot(None))
            .order_by(Task.last_synced_at.desc())
            .limit(1)
            .scalar()
        )
        return last.isoformat() if last else None

    def get_status(self) -> dict:
        """Queue depth, last sync time and connectivity, each computed independently."""
        return {
            "pending_count": self._safe(lambda: self.outbox.count(STATUS_PENDING), 0, "pending count"),
            "failed_count": self._safe(lambda: self.outbox.count(STATUS_FAILED), 0, "failed count"),
            "total_count": self._safe(self.outbox.count, 0, "total count"),
            "last_sync_time": self._safe(self.get_last_sync_time, None, "last sync time"),
            "connectivity": self._safe(self.check_connectivity, False, "connectivity"),
        }

    def _safe(self, fn, default, what):
        try:
            return fn()
        except STATUS_ERRORS as e:
            self.db.rollback()
            logger.error("Failed to get %s: %s", what, e)
            return default

    def submit_batch(self, items: Iterable) -> dict:
        """
        Enqueue several intents independently.

        A bad item is reported in the results and does not affect the others.
        """
        if not isinstance(items, (list, tuple)):
            raise ValidationError("Batch items must be a list")

        results = []
        successful = 0
        for index, raw in enumerate(items):
            try:
                item = raw if isinstance(raw, BatchItem) else BatchItem.model_validate(raw)
            except PydanticValidationError as e:
                results.append(_batch_error(index, None, e))
                continue

            try:
                queued = self.outbox.enqueue(item.task_id, item.operation, item.data)
            except ValidationError as e:
                results.append(_batch_error(index, item.task_id, e))
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error("Failed to queue batch item %d for task %s: %s", index, item.task_id, e)
                results.append(_batch_error(index, item.task_id, e))
            else:
                successful += 1
                results.append({
                    "index": index,
                    "task_id": item.task_id,
                    "status": "queued",
                    "id": queued.id,
                })

        return {
            "processed": len(results),
            "successful": successful,
            "failed": len(results) - successful,
            "results": results,
        }


class QueueAdmin:
    """Listing, retry reset and purge over the outbox. Holds no state of its own."""

    def __init__(self, db: Session, outbox: Optional[OutboxQueue] = None):
        self.db = db
        self.outbox = outbox or OutboxQueue(db)

    def list_queue(self, status: Optional[str] = None, limit: int = 50, offset: int = 0) -> dict:
        items = self.outbox.list(status=status, limit=limit, offset=offset)
        return {
            "items": [item.to_dict() for item in items],
            "total": self.outbox.count(status),
            "limit": limit,
            "offset": offset,
        }

    def counts(self) -> dict:
        return {
            "pending": self.outbox.count(STATUS_PENDING),
            "failed": self.outbox.count(STATUS_FAILED),
            "total": self.outbox.count(),
        }

    def retry_all_failed(self) -> dict:
        retried = self.outbox.reset(all_failed=True)
        logger.info("Reset %d exhausted intents", retried)
        return {"retried": retried, "failed": 0}

    def retry_selected(self, ids) -> dict:
        """
        Reset the exhausted intents among `ids`.

        Every requested id that was not reset, including repeats of one
        already reset, is counted as failed.
        """
        ids = list(ids or [])
        if not ids:
            return {"retried": 0, "failed": 0}
        retried = self.outbox.reset(ids=ids)
        logger.info("Reset %d of %d selected intents", retried, len(ids))
        return {"retried": retried, "failed": len(ids) - retried}

    def retry(self, ids=None, all_failed: bool = False) -> dict:
        """
        Reset either the given ids or every exhausted intent, never both.

        The failed tally counts requested ids as given, duplicates included.
        """
        if all_failed and ids:
            raise ValidationError("Provide either ids or all_failed, not both")
        if all_failed:
            return self.retry_all_failed()
        if ids:
            return self.retry_selected(ids)
        raise ValidationError("Provide a non-empty list of ids or all_failed=true")

    def clear_queue(self) -> dict:
        return {"cleared": self.outbox.clear()}


def sync_once(session_factory=SessionLocal, remote: Optional[RemoteClient] = None) -> dict:
    """Run a pass with a fresh session, for callers outside a request."""
    db = session_factory()
    try:
        return SyncService(db, remote=remote).sync()
    finally:
        db.close()


def _result(success, synced_count, failed_count, details) -> dict:
    return {
        "success": success,
        "synced_count": synced_count,
        "failed_count": failed_count,
        "details": details,
    }


def _batch_error(index, task_id, error) -> dict:
    return {
        "index": index,
        "task_id": task_id,
        "status": "error",
        "error": str(error),
    }
