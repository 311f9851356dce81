"""
Task Sync - Request and Payload Schemas

Pydantic models for API request bodies and for the JSON snapshots stored
in the outbox. Stored payloads decode to either a full TaskSnapshot or a
RawPayload fallback for partial snapshots.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from tasksync.errors import MalformedPayloadError


class TaskSnapshot(BaseModel):
    """Full task state captured when a mutation was queued"""

    kind: Literal["task"] = "task"
    id: str
    title: str
    description: str = ""
    completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_deleted: bool = False
    sync_status: Optional[str] = None
    server_id: Optional[str] = None
    last_synced_at: Optional[datetime] = None

    def to_request_body(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"kind"})


class RawPayload(BaseModel):
    """Any other JSON object, passed through to the remote untouched"""

    kind: Literal["raw"] = "raw"
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_request_body(self) -> Dict[str, Any]:
        return dict(self.data)


Payload = Union[TaskSnapshot, RawPayload]


def encode_payload(data: Optional[Dict[str, Any]]) -> str:
    """Serialize a snapshot for storage. The result is a value copy."""
    if data is None:
        return ""
    if not isinstance(data, dict):
        raise TypeError(f"payload must be a JSON object, got {type(data).__name__}")
    return json.dumps(data, default=str)


def decode_payload(text: Optional[str]) -> Payload:
    """
    Deserialize a stored payload.

    Raises:
        MalformedPayloadError: if the text is not a JSON object
    """
    if not text:
        return RawPayload()

    try:
        obj = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"Malformed data in sync queue: {e}") from e

    if not isinstance(obj, dict):
        raise MalformedPayloadError(
            f"Malformed data in sync queue: expected object, got {type(obj).__name__}"
        )

    try:
        return TaskSnapshot.model_validate({**obj, "kind": "task"})
    except PydanticValidationError:
        return RawPayload(data=obj)


# API request bodies


class TaskCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = ""
    completed: Optional[bool] = False


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None


class BatchItem(BaseModel):
    # Each item is validated when enqueued
    task_id: Optional[Any] = None
    operation: Optional[Any] = None
    data: Optional[Any] = None


class BatchRequest(BaseModel):
    items: List[BatchItem]


class RetryRequest(BaseModel):
    ids: Optional[List[int]] = None
    all_failed: bool = False
