"""Upstream fetcher: live status + schedule for one registered venue. No caching."""
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from parkwatch.core.errors import FetchError
from parkwatch.services.registry import VenueRegistry
from parkwatch.services.types import VenueDescriptor

logger = logging.getLogger(__name__)


class ParkDataSource(Protocol):
    """Interface for the upstream client. Only fetch differs between sources."""

    def get_live(self, entity_id: str) -> Any:
        ...

    def get_schedule(self, entity_id: str) -> Any:
        ...


@dataclass(frozen=True)
class FetchResult:
    venue_id: str
    raw_live: Any
    raw_schedule: Any


class Fetcher:
    def __init__(self, registry: VenueRegistry, source: ParkDataSource):
        self._registry = registry
        self._source = source

    def fetch(self, venue: VenueDescriptor | str) -> FetchResult:
        """
        Retrieve raw live status and schedule for one venue.
        Raises UnknownVenue if the venue is not registered, UpstreamUnavailable / UpstreamTimeout
        if either retrieval fails. Errors carry the venue id so the aggregator can report them.
        """
        venue_id = venue if isinstance(venue, str) else venue.id
        descriptor = self._registry.get(venue_id)
        try:
            raw_live = self._source.get_live(descriptor.entity_id)
            raw_schedule = self._source.get_schedule(descriptor.entity_id)
        except FetchError as e:
            e.venue_id = venue_id
            logger.warning("Fetch failed for %s: %s", venue_id, e)
            raise
        return FetchResult(venue_id=venue_id, raw_live=raw_live, raw_schedule=raw_schedule)
