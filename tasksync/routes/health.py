"""
Task Sync - Health Check Routes

Provides health check endpoints for monitoring.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from tasksync.database import utcnow
from tasksync.routes.dependencies import get_db

router = APIRouter()


@router.get("")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "service": "task-sync",
    }


@router.get("/ready")
def readiness(db: Session = Depends(get_db)):
    """Readiness check - verifies database connectivity"""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unavailable",
                "error": str(e),
                "timestamp": utcnow().isoformat(),
            },
        )
    return {
        "status": "ready",
        "timestamp": utcnow().isoformat(),
    }


@router.get("/live")
async def liveness():
    """Liveness check - indicates service is running"""
    return {
        "status": "alive",
        "timestamp": utcnow().isoformat(),
    }
