"""
Task Sync - Sync Routes

Manual reconciliation trigger, status, batch submission and queue
administration.
"""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from tasksync.config import settings
from tasksync.errors import ValidationError
from tasksync.routes.dependencies import get_db, get_remote_client
from tasksync.schemas import BatchRequest, RetryRequest
from tasksync.services.remote_client import RemoteClient
from tasksync.services.sync_service import QueueAdmin, SyncService

router = APIRouter()


@router.post("")
def trigger_sync(
    db: Session = Depends(get_db),
    remote: RemoteClient = Depends(get_remote_client),
):
    """
    Manually trigger one reconciliation pass.

    Item failures are reported in the body; the request itself still
    succeeds unless the queue could not be read.
    """
    try:
        return SyncService(db, remote=remote).sync()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/status")
def sync_status(
    db: Session = Depends(get_db),
    remote: RemoteClient = Depends(get_remote_client),
):
    """Get queue depth, last sync time and remote connectivity"""
    return SyncService(db, remote=remote).get_status()


@router.post("/batch")
def submit_batch(
    request: BatchRequest,
    db: Session = Depends(get_db),
    remote: RemoteClient = Depends(get_remote_client),
):
    """Queue several operations, reporting a result per item"""
    try:
        return SyncService(db, remote=remote).submit_batch(request.items)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/queue")
def list_queue(
    status: Optional[Literal["pending", "failed"]] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List queued operations, newest first"""
    limit = min(limit or settings.QUEUE_PAGE_SIZE, settings.QUEUE_PAGE_MAX)
    try:
        return QueueAdmin(db).list_queue(status=status, limit=limit, offset=offset)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/retry")
def retry_failed(request: RetryRequest, db: Session = Depends(get_db)):
    """Reset exhausted operations, either by id or all at once"""
    try:
        return QueueAdmin(db).retry(ids=request.ids, all_failed=request.all_failed)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/queue")
def clear_queue(db: Session = Depends(get_db)):
    """Remove every queued operation"""
    try:
        return QueueAdmin(db).clear_queue()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
