from tasksync.database import Base
from tasksync.models.outbox import OPERATIONS, SyncQueueItem
from tasksync.models.task import SYNC_ERROR, SYNC_PENDING, SYNC_SYNCED, Task

__all__ = [
    "Base",
    "OPERATIONS",
    "SYNC_ERROR",
    "SYNC_PENDING",
    "SYNC_SYNCED",
    "SyncQueueItem",
    "Task",
]
