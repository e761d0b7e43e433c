"""
Normalized wait times for the presentation layer: parks, latest snapshot, manual refresh.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends

from parkwatch.api.deps import get_aggregator, get_registry, get_scheduler
from parkwatch.core.errors import UnknownVenue, error_to_http
from parkwatch.scheduler.wait_times_job import WaitTimesScheduler
from parkwatch.services.aggregator import WaitTimesAggregator
from parkwatch.services.registry import VenueRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/parks")
def list_parks(registry: VenueRegistry = Depends(get_registry)) -> dict[str, Any]:
    """Registered parks, in polling order."""
    return {
        "parks": [
            {
                "id": v.id,
                "name": v.display_name,
                "timezone": v.timezone,
                "location": v.location,
                "resort": v.resort,
            }
            for v in registry.list_venues()
        ]
    }


@router.get("/wait-times")
def get_wait_times(aggregator: WaitTimesAggregator = Depends(get_aggregator)) -> dict[str, Any]:
    """
    Latest cycle: one entry per park that succeeded, plus last_updated and per-park failures.
    pending=true until the first cycle completes.
    """
    report = aggregator.latest
    if report is None:
        return {"pending": True, "state": aggregator.state.value, "parks": [], "last_updated": None, "failures": []}
    return {"pending": False, "state": aggregator.state.value, **report.to_dict()}


@router.get("/wait-times/{venue_id}")
def get_park_wait_times(
    venue_id: str,
    registry: VenueRegistry = Depends(get_registry),
    aggregator: WaitTimesAggregator = Depends(get_aggregator),
) -> dict[str, Any]:
    """One park from the latest cycle. available=false when the park failed (or no cycle ran yet)."""
    try:
        registry.get(venue_id)
    except UnknownVenue as e:
        raise error_to_http(e) from e
    report = aggregator.latest
    park = report.snapshot.park(venue_id) if report else None
    failure = report.failures.get(venue_id) if report else None
    return {
        "available": park is not None,
        "last_updated": report.snapshot.last_updated.isoformat() if report else None,
        "failure": failure.to_dict() if failure else None,
        **(park.to_dict() if park else {"venue": None, "attractions": [], "wait_samples": []}),
    }


@router.post("/wait-times/refresh")
def refresh_wait_times(scheduler: WaitTimesScheduler = Depends(get_scheduler)) -> dict[str, Any]:
    """Run a cycle now (or wait for the one already running) and return its result."""
    report = scheduler.refresh_now()
    return {"pending": False, **report.to_dict()}
