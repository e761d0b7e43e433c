"""Normalized types for every park source. Same shape regardless of how the upstream payload looked."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from parkwatch.core.constants import NO_WAIT_MINUTES


class AttractionKind(str, Enum):
    RIDE = "ride"
    SHOW = "show"
    MEET_GREET = "meet_greet"
    RESTAURANT = "restaurant"
    SHOP = "shop"


class AttractionCategory(str, Enum):
    THRILL = "thrill"
    FAMILY = "family"
    KIDS = "kids"
    WATER = "water"
    DARK = "dark"
    OUTDOOR = "outdoor"


class AttractionStatus(str, Enum):
    OPERATING = "operating"
    CLOSED = "closed"
    DOWN = "down"
    REFURBISHMENT = "refurbishment"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class VenueDescriptor:
    """Registry entry: what we need to query the upstream for one park."""
    id: str
    display_name: str
    entity_id: str
    timezone: str
    location: str = ""
    resort: str = ""


@dataclass(frozen=True)
class Venue:
    id: str
    display_name: str
    timezone: str
    is_open: bool
    open_time: datetime | None = None
    close_time: datetime | None = None
    location: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "timezone": self.timezone,
            "location": self.location,
            "is_open": self.is_open,
            "open_time": _iso(self.open_time),
            "close_time": _iso(self.close_time),
        }


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Attraction:
    id: str
    name: str
    venue_id: str
    kind: AttractionKind = AttractionKind.RIDE
    category: AttractionCategory = AttractionCategory.FAMILY
    has_fast_pass: bool = False
    has_virtual_queue: bool = False
    location: GeoPoint | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "venue_id": self.venue_id,
            "kind": self.kind.value,
            "category": self.category.value,
            "has_fast_pass": self.has_fast_pass,
            "has_virtual_queue": self.has_virtual_queue,
            "location": (
                {"latitude": self.location.latitude, "longitude": self.location.longitude}
                if self.location
                else None
            ),
        }


@dataclass(frozen=True)
class WaitSample:
    """Latest reading for one attraction. minutes == -1 exactly when status is not operating."""
    attraction_id: str
    minutes: int
    status: AttractionStatus
    observed_at: datetime
    is_estimate: bool = True
    lightning_lane_available: bool = False

    def __post_init__(self) -> None:
        operating = self.status == AttractionStatus.OPERATING
        if operating and self.minutes < 0:
            raise ValueError(f"operating sample for {self.attraction_id} needs minutes >= 0")
        if not operating and self.minutes != NO_WAIT_MINUTES:
            raise ValueError(f"non-operating sample for {self.attraction_id} needs minutes == -1")

    @property
    def is_operating(self) -> bool:
        return self.status == AttractionStatus.OPERATING

    def to_dict(self) -> dict[str, Any]:
        return {
            "attraction_id": self.attraction_id,
            "minutes": self.minutes,
            "status": self.status.value,
            "observed_at": self.observed_at.isoformat(),
            "is_estimate": self.is_estimate,
            "lightning_lane_available": self.lightning_lane_available,
        }


@dataclass(frozen=True)
class NormalizedPark:
    """One venue's cycle output: the venue plus its attractions and samples (same order)."""
    venue: Venue
    attractions: tuple[Attraction, ...] = ()
    wait_samples: tuple[WaitSample, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "venue": self.venue.to_dict(),
            "attractions": [a.to_dict() for a in self.attractions],
            "wait_samples": [s.to_dict() for s in self.wait_samples],
        }


@dataclass(frozen=True)
class Snapshot:
    """Merged view of one cycle: every venue that succeeded, in registry order."""
    parks: tuple[NormalizedPark, ...]
    last_updated: datetime
    _samples: dict[str, WaitSample] = field(default_factory=dict, init=False, repr=False, compare=False)
    _attractions: dict[str, Attraction] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for park in self.parks:
            for a in park.attractions:
                self._attractions.setdefault(a.id, a)
            for s in park.wait_samples:
                self._samples.setdefault(s.attraction_id, s)

    def sample_for(self, attraction_id: str) -> WaitSample | None:
        return self._samples.get(attraction_id)

    def attraction(self, attraction_id: str) -> Attraction | None:
        return self._attractions.get(attraction_id)

    @property
    def venue_ids(self) -> list[str]:
        return [p.venue.id for p in self.parks]

    def park(self, venue_id: str) -> NormalizedPark | None:
        for p in self.parks:
            if p.venue.id == venue_id:
                return p
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "parks": [p.to_dict() for p in self.parks],
            "last_updated": self.last_updated.isoformat(),
        }
