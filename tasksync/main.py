"""
Task Sync - Main Entry Point

FastAPI application for a local-first task manager. Task mutations are
stored locally and queued, then reconciled with the remote authority on
demand or on a fixed interval.
"""

import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
import uvicorn
from tasksync import __version__
from tasksync.config import settings
from tasksync.database import init_db
from tasksync.logging_config import configure_logging
from tasksync.routes import health, sync, tasks
from tasksync.services.sync_service import sync_once

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Task Sync",
    description="Local-first task manager with outbox reconciliation",
    version=__version__,
)

# Security middleware
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.ALLOWED_HOSTS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api/health", tags=["health"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(sync.router, prefix="/api/sync", tags=["sync"])

_periodic_task = None


async def periodic_sync(interval: float):
    """Run one reconciliation pass every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            result = await asyncio.to_thread(sync_once)
        except Exception:
            logger.exception("Scheduled sync pass failed")
            continue
        if result["synced_count"] or result["failed_count"] or not result["success"]:
            logger.info(
                "Scheduled sync: success=%s synced=%d failed=%d",
                result["success"], result["synced_count"], result["failed_count"],
            )


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    global _periodic_task
    configure_logging(settings)
    init_db()
    logger.info("Task Sync starting...")

    if settings.SYNC_INTERVAL_SECONDS > 0:
        _periodic_task = asyncio.create_task(periodic_sync(settings.SYNC_INTERVAL_SECONDS))
        logger.info("Periodic sync every %ds", settings.SYNC_INTERVAL_SECONDS)


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    global _periodic_task
    if _periodic_task is not None:
        _periodic_task.cancel()
        try:
            await _periodic_task
        except asyncio.CancelledError:
            pass
        _periodic_task = None
    logger.info("Task Sync shutting down...")


def run():
    uvicorn.run(
        "tasksync.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
