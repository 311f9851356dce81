"""
Task Sync - Error Taxonomy

Validation errors are rejected before any state change. Sync failures are
recorded against a single outbox intent and count toward its retry budget.
Storage errors are fatal to the current operation or pass.
"""


class TaskSyncError(Exception):
    """Base class for all task sync errors"""


class ValidationError(TaskSyncError, ValueError):
    """Malformed caller input"""


class InvalidIntentError(ValidationError):
    """An outbox intent could not be enqueued because its fields are invalid"""


class SyncFailure(TaskSyncError):
    """A single intent failed to apply; the pass continues"""


class RemoteApplicationError(SyncFailure):
    """The remote authority rejected the operation"""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class RemoteConnectivityError(SyncFailure):
    """The remote authority could not be reached"""


class MalformedPayloadError(SyncFailure):
    """An intent payload could not be deserialized"""


class StorageError(TaskSyncError):
    """The durable store is unavailable"""
