import logging

from fastapi import APIRouter, Depends, Query

from stablewatch.dependencies import get_recent_events, get_watcher_service
from stablewatch.domains.presentation.recent_events import RecentEventsStore
from stablewatch.services.watcher_service import WatcherService

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/status")
async def get_status(watcher_service: WatcherService = Depends(get_watcher_service)):
    """Current watcher state."""
    logging.debug("Status endpoint called")
    return watcher_service.get_status()


@router.get("/events/recent")
async def get_recent_stable_files(
    limit: int = Query(default=50, ge=1, le=1000),
    recent_events: RecentEventsStore = Depends(get_recent_events),
):
    """Most recently stabilized files, newest first."""
    events = recent_events.list(limit)
    return {"count": len(events), "events": events}
