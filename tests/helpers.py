"""Shared builders and fakes for the test suites."""
import threading
from datetime import datetime, timedelta, timezone
from typing import Any

from parkwatch.core.errors import UpstreamUnavailable
from parkwatch.services.registry import VenueRegistry
from parkwatch.services.types import VenueDescriptor

# Noon in Orlando on 2024-05-01
NOW = datetime(2024, 5, 1, 16, 0, tzinfo=timezone.utc)


def make_registry(*ids: str) -> VenueRegistry:
    return VenueRegistry(
        VenueDescriptor(
            id=vid,
            display_name=vid.upper(),
            entity_id=f"{vid}-entity",
            timezone="America/New_York",
            location="Test Resort",
        )
        for vid in ids
    )


def attraction_record(
    attraction_id: str,
    name: str,
    *,
    status: Any = "OPERATING",
    wait: Any = 25,
    entity_type: str = "ATTRACTION",
    **extra: Any,
) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": attraction_id,
        "name": name,
        "entityType": entity_type,
        "status": status,
        "attractionType": "RIDE",
        "tags": [],
        "lastUpdated": "2024-05-01T15:55:00Z",
    }
    if wait is not None:
        record["queue"] = {"STANDBY": {"waitTime": wait}}
    record.update(extra)
    return record


def live_payload(*records: dict[str, Any]) -> dict[str, Any]:
    return {"id": "park", "name": "Park", "entityType": "PARK", "liveData": list(records)}


def schedule_payload(day: str = "2024-05-01", kind: str = "OPERATING") -> dict[str, Any]:
    return {
        "schedule": [
            {
                "date": day,
                "type": kind,
                "openingTime": f"{day}T09:00:00-04:00",
                "closingTime": f"{day}T22:00:00-04:00",
            }
        ]
    }


class FakeClock:
    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeSource:
    """
    Stands in for ThemeParksClient. Per entity id: a live payload, or an exception to raise.
    Optional gates block get_live for an entity until the event is set.
    """

    def __init__(self, live: dict[str, Any] | None = None, schedule: dict[str, Any] | None = None):
        self.live = dict(live or {})
        self.schedule = dict(schedule or {})
        self.gates: dict[str, threading.Event] = {}
        self.entered = threading.Event()
        self.live_calls = 0
        self._lock = threading.Lock()

    def get_live(self, entity_id: str) -> Any:
        with self._lock:
            self.live_calls += 1
        gate = self.gates.get(entity_id)
        if gate is not None:
            self.entered.set()
            gate.wait(5)
        value = self.live.get(entity_id)
        if value is None:
            raise UpstreamUnavailable(f"no stub for {entity_id}", status_code=503)
        if isinstance(value, Exception):
            raise value
        return value

    def get_schedule(self, entity_id: str) -> Any:
        return self.schedule.get(entity_id, schedule_payload())
