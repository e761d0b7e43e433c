"""Venue registry: static mapping from park id to the upstream entity and metadata. Read-only after construction."""
import logging
from collections.abc import Iterable

from parkwatch.core.errors import UnknownVenue
from parkwatch.data.parks import DEFAULT_RESORT, get_parks, list_resorts
from parkwatch.services.types import VenueDescriptor

logger = logging.getLogger(__name__)


class VenueRegistry:
    """Ordered, immutable set of venue descriptors."""

    def __init__(self, venues: Iterable[VenueDescriptor]):
        ordered: dict[str, VenueDescriptor] = {}
        for v in venues:
            if v.id in ordered:
                logger.warning("Duplicate venue id %s in registry; keeping the first entry", v.id)
                continue
            ordered[v.id] = v
        self._venues = tuple(ordered.values())
        self._by_id = ordered

    @classmethod
    def from_resorts(cls, resorts: Iterable[str]) -> "VenueRegistry":
        """Build from resort keys in parkwatch.data.parks. Unknown keys are skipped; none left -> default resort."""
        known = set(list_resorts())
        selected = []
        for r in resorts:
            if r in known:
                selected.append(r)
            else:
                logger.warning("Unknown resort %r ignored (known: %s)", r, sorted(known))
        if not selected:
            selected = [DEFAULT_RESORT]
        venues = [
            VenueDescriptor(
                id=p["id"],
                display_name=p["name"],
                entity_id=p["entity_id"],
                timezone=p["timezone"],
                location=p.get("location", ""),
                resort=resort,
            )
            for resort in selected
            for p in get_parks(resort)
        ]
        return cls(venues)

    def list_venues(self) -> tuple[VenueDescriptor, ...]:
        return self._venues

    def get(self, venue_id: str) -> VenueDescriptor:
        try:
            return self._by_id[venue_id]
        except KeyError:
            raise UnknownVenue(venue_id) from None

    def __contains__(self, venue_id: object) -> bool:
        return venue_id in self._by_id

    def __len__(self) -> int:
        return len(self._venues)
