from typing import Annotated
from fastapi import APIRouter, Depends, Query
import logging

from app.config import settings
from app.exceptions import NotReadyError
from app.schemas import GuideResponse, RefreshResponse
from app.services import (
    ListingsStore,
    ListingsWatcher,
    get_guide_data,
    get_listings_store,
    get_listings_watcher
)
from app.utils.timezone import parse_iso8601


logger = logging.getLogger(__name__)

main_router = APIRouter()

@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    return {
        "service": "TV Guide Service",
        "version": "0.1.0",
        "endpoints": {
            "guide": "/guide - Get the listing grid (query params: now, slots, slot_width, lower, upper)",
            "refresh": "/refresh - Queue a reload of the listings file",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(
    store: Annotated[ListingsStore, Depends(get_listings_store)],
    watcher: Annotated[ListingsWatcher, Depends(get_listings_watcher)]
) -> dict:
    """Health check endpoint"""
    next_run = watcher.get_next_run_time()
    snapshot = store.snapshot() if store.is_ready else None

    return {
        "status": "ok" if snapshot else "not_ready",
        "listings_loaded": snapshot is not None,
        "loaded_at": snapshot.loaded_at.isoformat() if snapshot else None,
        "channels": len(snapshot.channels) if snapshot else 0,
        "programmes": len(snapshot.programmes) if snapshot else 0,
        "watcher_running": watcher.running,
        "next_check": next_run.isoformat() if next_run else None
    }


@main_router.post("/refresh", response_model=RefreshResponse, status_code=202)
async def trigger_refresh(
    store: Annotated[ListingsStore, Depends(get_listings_store)],
    watcher: Annotated[ListingsWatcher, Depends(get_listings_watcher)]
) -> RefreshResponse:
    """
    Queue a reload of the listings file

    The file is read on the watcher thread; the response describes the
    snapshot in effect when the request was accepted.
    """
    logger.info("Manual listings refresh triggered via API")
    if not watcher.request_refresh():
        raise NotReadyError("Listings watcher is not running, refresh cannot be scheduled")

    snapshot = store.snapshot() if store.is_ready else None

    return RefreshResponse(
        status="accepted",
        listings_loaded=snapshot is not None,
        loaded_at=snapshot.loaded_at.isoformat() if snapshot else None,
        channels=len(snapshot.channels) if snapshot else 0,
        programmes=len(snapshot.programmes) if snapshot else 0,
        source_digest=snapshot.source_digest if snapshot else None
    )


@main_router.get("/guide", response_model=GuideResponse, response_model_by_alias=True, response_model_exclude_none=True)
def get_guide(
    store: Annotated[ListingsStore, Depends(get_listings_store)],
    now: Annotated[str | None, Query(description="ISO8601 reference time, e.g. 2024-03-24T01:30:00-05:00")] = None,
    slots: Annotated[int | None, Query(le=settings.max_slot_count, description="Number of timeslots")] = None,
    slot_width: Annotated[int | None, Query(description="Minutes per timeslot, must divide 1440")] = None,
    lower: Annotated[int | None, Query(description="Lowest channel number (inclusive)")] = None,
    upper: Annotated[int | None, Query(description="Highest channel number (exclusive)")] = None
) -> GuideResponse:
    """
    Get the listing grid for all channels

    Returns:
        Window bounds plus per-channel listings clipped to the window
    """
    logger.debug(f"Guide request: now={now}, slots={slots}, slot_width={slot_width}, lower={lower}, upper={upper}")

    grid = get_guide_data(
        store,
        now=parse_iso8601(now) if now else None,
        slot_count=slots if slots is not None else settings.default_slot_count,
        slot_width=slot_width if slot_width is not None else settings.default_slot_width,
        lower_channel_limit=lower,
        upper_channel_limit=upper
    )

    return GuideResponse.from_grid(grid)
