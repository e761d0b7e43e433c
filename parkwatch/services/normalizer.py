"""
Normalize raw themeparks.wiki payloads into Venue / Attraction / WaitSample records.

Every field goes through a total mapping function with a documented default, so a
malformed record is a modeled case: it is dropped (with a warning) and never fails the
payload. normalize() itself never raises.
"""
import logging
import math
from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from parkwatch.core.constants import NO_WAIT_MINUTES
from parkwatch.core.errors import MalformedRecord
from parkwatch.services.types import (
    Attraction,
    AttractionCategory,
    AttractionKind,
    AttractionStatus,
    GeoPoint,
    NormalizedPark,
    Venue,
    VenueDescriptor,
    WaitSample,
)

logger = logging.getLogger(__name__)

ENTITY_TYPE_ATTRACTION = "ATTRACTION"
SCHEDULE_TYPE_OPERATING = "OPERATING"

KIND_MAP: dict[str, AttractionKind] = {
    "RIDE": AttractionKind.RIDE,
    "SHOW": AttractionKind.SHOW,
    "MEET_GREET": AttractionKind.MEET_GREET,
    "RESTAURANT": AttractionKind.RESTAURANT,
    "SHOP": AttractionKind.SHOP,
}

STATUS_MAP: dict[str, AttractionStatus] = {
    "OPERATING": AttractionStatus.OPERATING,
    "CLOSED": AttractionStatus.CLOSED,
    "DOWN": AttractionStatus.DOWN,
    "REFURBISHMENT": AttractionStatus.REFURBISHMENT,
}

# First match wins
CATEGORY_PRIORITY: tuple[AttractionCategory, ...] = (
    AttractionCategory.THRILL,
    AttractionCategory.FAMILY,
    AttractionCategory.KIDS,
    AttractionCategory.WATER,
)
DEFAULT_CATEGORY = AttractionCategory.FAMILY

_TAG_KEYS = ("tag", "key", "value", "tagName")


# ---------------------------------------------------------------------------
# Field mappings (total: bad input -> default)
# ---------------------------------------------------------------------------


def map_kind(raw: Any) -> AttractionKind:
    if isinstance(raw, str):
        return KIND_MAP.get(raw.strip().upper(), AttractionKind.RIDE)
    return AttractionKind.RIDE


def map_status(raw: Any) -> AttractionStatus:
    if isinstance(raw, str):
        return STATUS_MAP.get(raw.strip().upper(), AttractionStatus.CLOSED)
    return AttractionStatus.CLOSED


def _tag_names(raw_tags: Any) -> set[str]:
    if not isinstance(raw_tags, list):
        return set()
    names = set()
    for t in raw_tags:
        if isinstance(t, str):
            names.add(t.strip().lower())
        elif isinstance(t, dict):
            for k in _TAG_KEYS:
                v = t.get(k)
                if isinstance(v, str) and v.strip():
                    names.add(v.strip().lower())
    return names


def map_category(raw_tags: Any) -> AttractionCategory:
    names = _tag_names(raw_tags)
    for category in CATEGORY_PRIORITY:
        if category.value in names:
            return category
    return DEFAULT_CATEGORY


def _as_number(v: Any) -> float | None:
    # bool is an int subclass; never a number here
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    return float(v)


def standby_minutes(queue: Any) -> int | None:
    """queue.STANDBY.waitTime as a non-negative int, or None when absent/unusable."""
    if not isinstance(queue, dict):
        return None
    standby = queue.get("STANDBY")
    if not isinstance(standby, dict):
        return None
    n = _as_number(standby.get("waitTime"))
    if n is None or not math.isfinite(n) or n < 0:
        return None
    return int(round(n))


def map_minutes(status: AttractionStatus, queue: Any) -> int:
    if status != AttractionStatus.OPERATING:
        return NO_WAIT_MINUTES
    minutes = standby_minutes(queue)
    return minutes if minutes is not None else 0


def _queue_available(queue: Any, name: str) -> bool:
    entry = queue.get(name) if isinstance(queue, dict) else None
    if not isinstance(entry, dict):
        return False
    if entry.get("available") is True:
        return True
    state = entry.get("state")
    return isinstance(state, str) and state.strip().upper() == "AVAILABLE"


def lightning_lane_available(queue: Any) -> bool:
    return any(_queue_available(queue, q) for q in ("LIGHTNING_LANE", "PAID_RETURN_TIME", "RETURN_TIME"))


def has_fast_pass(record: dict[str, Any]) -> bool:
    if record.get("singleRider") is True:
        return True
    queue = record.get("queue")
    return isinstance(queue, dict) and any(q in queue for q in ("RETURN_TIME", "PAID_RETURN_TIME", "LIGHTNING_LANE"))


def has_virtual_queue(record: dict[str, Any]) -> bool:
    if record.get("virtualQueue") is True:
        return True
    queue = record.get("queue")
    return isinstance(queue, dict) and "BOARDING_GROUP" in queue


def map_location(raw: Any) -> GeoPoint | None:
    if not isinstance(raw, dict):
        return None
    lat = _as_number(raw.get("latitude"))
    lon = _as_number(raw.get("longitude"))
    if lat is None or lon is None:
        return None
    return GeoPoint(latitude=lat, longitude=lon)


def parse_timestamp(raw: Any) -> datetime | None:
    """ISO-8601 string -> aware datetime (naive values are taken as UTC). None if unparseable."""
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        dt = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_date(raw: Any) -> date | None:
    if not isinstance(raw, str) or len(raw) < 10:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def _zone(name: str) -> ZoneInfo | timezone:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using UTC for schedule dates", name)
        return timezone.utc


def _entity_id(raw: Any) -> str | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return str(raw)
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


# ---------------------------------------------------------------------------
# Venue and records
# ---------------------------------------------------------------------------


def build_venue(descriptor: VenueDescriptor, raw_schedule: Any, now: datetime) -> Venue:
    """is_open iff today's (venue-local) schedule entry is OPERATING. No entry -> closed, no times."""
    today = now.astimezone(_zone(descriptor.timezone)).date()
    entries = raw_schedule.get("schedule") if isinstance(raw_schedule, dict) else None
    if not isinstance(entries, list):
        entries = []
    todays = [e for e in entries if isinstance(e, dict) and _parse_date(e.get("date")) == today]
    entry = next((e for e in todays if e.get("type") == SCHEDULE_TYPE_OPERATING), None)
    if entry is None and todays:
        entry = todays[0]
    if entry is None:
        return Venue(
            id=descriptor.id,
            display_name=descriptor.display_name,
            timezone=descriptor.timezone,
            is_open=False,
            location=descriptor.location,
        )
    return Venue(
        id=descriptor.id,
        display_name=descriptor.display_name,
        timezone=descriptor.timezone,
        is_open=entry.get("type") == SCHEDULE_TYPE_OPERATING,
        open_time=parse_timestamp(entry.get("openingTime")),
        close_time=parse_timestamp(entry.get("closingTime")),
        location=descriptor.location,
    )


def to_attraction_and_sample(venue_id: str, record: Any, now: datetime) -> tuple[Attraction, WaitSample]:
    """Map one ATTRACTION record. Raises MalformedRecord when it cannot be converted."""
    if not isinstance(record, dict):
        raise MalformedRecord(f"record is {type(record).__name__}, not an object")
    attraction_id = _entity_id(record.get("id"))
    name = record.get("name")
    name = name.strip() if isinstance(name, str) else ""
    if not attraction_id or not name:
        raise MalformedRecord(f"attraction without id or name (id={record.get('id')!r})")
    status = map_status(record.get("status"))
    queue = record.get("queue")
    attraction = Attraction(
        id=attraction_id,
        name=name,
        venue_id=venue_id,
        kind=map_kind(record.get("attractionType")),
        category=map_category(record.get("tags")),
        has_fast_pass=has_fast_pass(record),
        has_virtual_queue=has_virtual_queue(record),
        location=map_location(record.get("location")),
    )
    sample = WaitSample(
        attraction_id=attraction_id,
        minutes=map_minutes(status, queue),
        status=status,
        observed_at=parse_timestamp(record.get("lastUpdated")) or now,
        is_estimate=True,
        lightning_lane_available=lightning_lane_available(queue),
    )
    return attraction, sample


def normalize(
    venue_id: str,
    raw_live: Any,
    raw_schedule: Any,
    *,
    venue: VenueDescriptor | None = None,
    now: datetime | None = None,
) -> NormalizedPark:
    """
    Convert one venue's raw live status and schedule into a NormalizedPark.
    venue supplies display name / timezone (falls back to the id and UTC when not given).
    now fixes "today" and the default observed_at; defaults to the current UTC time.
    """
    now = now or datetime.now(timezone.utc)
    descriptor = venue or VenueDescriptor(id=venue_id, display_name=venue_id, entity_id="", timezone="UTC")
    park = build_venue(descriptor, raw_schedule, now)

    records = raw_live.get("liveData") if isinstance(raw_live, dict) else None
    if not isinstance(records, list):
        logger.warning("No liveData list for %s (got %s)", venue_id, type(records).__name__)
        return NormalizedPark(venue=park)

    attractions: list[Attraction] = []
    samples: list[WaitSample] = []
    seen: set[str] = set()
    skipped = 0
    for record in records:
        if isinstance(record, dict) and record.get("entityType") != ENTITY_TYPE_ATTRACTION:
            logger.debug("%s: skipping %s entity %s", venue_id, record.get("entityType"), record.get("id"))
            continue
        try:
            attraction, sample = to_attraction_and_sample(venue_id, record, now)
        except MalformedRecord as e:
            skipped += 1
            logger.warning("%s: skipping malformed record: %s", venue_id, e)
            continue
        if attraction.id in seen:
            skipped += 1
            logger.warning("%s: duplicate attraction id %s; keeping first", venue_id, attraction.id)
            continue
        seen.add(attraction.id)
        attractions.append(attraction)
        samples.append(sample)

    logger.debug(
        "Normalized %s: %s attractions, %s skipped", venue_id, len(attractions), skipped
    )
    return NormalizedPark(venue=park, attractions=tuple(attractions), wait_samples=tuple(samples))
