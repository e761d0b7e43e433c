"""
One polling cycle: fetch + normalize every registered park in parallel, merge into a
snapshot, evaluate alert rules, dispatch notifications.

Single-flight: at most one cycle runs at a time. A timer tick that arrives while a cycle is
running is dropped; a manual refresh joins the running cycle and gets its report.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from parkwatch.core.constants import DEFAULT_FETCH_TIMEOUT_SECONDS
from parkwatch.core.errors import DispatchFailure, FetchError, UpstreamTimeout
from parkwatch.services.alerts import AlertEngine, NotificationEvent
from parkwatch.services.dispatch import NotificationDispatcher
from parkwatch.services.fetcher import Fetcher
from parkwatch.services.normalizer import normalize
from parkwatch.services.registry import VenueRegistry
from parkwatch.services.types import NormalizedPark, Snapshot, VenueDescriptor

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CycleState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class VenueFailure:
    venue_id: str
    error: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"venue_id": self.venue_id, "error": self.error, "message": self.message}


@dataclass(frozen=True)
class CycleReport:
    """Result of one cycle: the merged snapshot plus which venues failed and why."""
    snapshot: Snapshot
    started_at: datetime
    finished_at: datetime
    failures: dict[str, VenueFailure] = field(default_factory=dict)
    events: tuple[NotificationEvent, ...] = ()
    dispatch_failures: tuple[str, ...] = ()

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.snapshot.to_dict(),
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "failures": [f.to_dict() for f in self.failures.values()],
            "notifications_fired": len(self.events),
            "dispatch_failures": list(self.dispatch_failures),
        }


class WaitTimesAggregator:
    def __init__(
        self,
        registry: VenueRegistry,
        fetcher: Fetcher,
        engine: AlertEngine,
        dispatcher: NotificationDispatcher | None = None,
        *,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        max_workers: int = 8,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._registry = registry
        self._fetcher = fetcher
        self._engine = engine
        self._dispatcher = dispatcher
        self._fetch_timeout = fetch_timeout
        self._clock = clock
        # One worker per venue (up to max_workers) so every venue gets the full deadline
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, min(max_workers, len(registry) or 1)),
            thread_name_prefix="wait_times_fetch",
        )
        self._lock = threading.Lock()
        self._state = CycleState.IDLE
        self._in_flight: Future | None = None
        self._latest: CycleReport | None = None
        self._cycles = 0
        # Fetches that missed a deadline and still hold a worker; only touched by the running cycle
        self._stragglers: dict[str, Future] = {}

    @property
    def state(self) -> CycleState:
        with self._lock:
            return self._state

    @property
    def latest(self) -> CycleReport | None:
        """Report of the last completed cycle (None before the first one)."""
        with self._lock:
            return self._latest

    @property
    def cycles_completed(self) -> int:
        with self._lock:
            return self._cycles

    def tick(self) -> CycleReport | None:
        """Timer entry point. No-op (returns None) if a cycle is already running."""
        with self._lock:
            if self._in_flight is not None:
                logger.info("Wait times tick skipped: cycle already in flight")
                return None
            future = self._begin()
        try:
            return self._run(future)
        except Exception as e:
            logger.exception("Wait times cycle failed: %s", e)
            return None

    def refresh(self, timeout: float | None = None) -> CycleReport:
        """Manual entry point. Joins the in-flight cycle if there is one, otherwise runs a new one."""
        with self._lock:
            future = self._in_flight
            joined = future is not None
            if not joined:
                future = self._begin()
        if joined:
            logger.debug("Manual refresh joined the in-flight cycle")
            return future.result(timeout)
        return self._run(future)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    # --- cycle ---

    def _begin(self) -> Future:
        future: Future = Future()
        self._in_flight = future
        self._state = CycleState.RUNNING
        return future

    def _run(self, future: Future) -> CycleReport:
        report: CycleReport | None = None
        error: Exception | None = None
        try:
            report = self._run_cycle()
        except Exception as e:
            error = e
        finally:
            with self._lock:
                self._in_flight = None
                self._state = CycleState.IDLE
                if report is not None:
                    self._latest = report
                    self._cycles += 1
        if error is not None:
            future.set_exception(error)
            raise error
        future.set_result(report)
        return report

    def _fetch_and_normalize(self, venue: VenueDescriptor) -> NormalizedPark:
        result = self._fetcher.fetch(venue)
        return normalize(venue.id, result.raw_live, result.raw_schedule, venue=venue, now=self._clock())

    def _run_cycle(self) -> CycleReport:
        started = self._clock()
        venues = self._registry.list_venues()
        parks: dict[str, NormalizedPark] = {}
        failures: dict[str, VenueFailure] = {}

        futures: dict[Future, VenueDescriptor] = {}
        for v in venues:
            previous = self._stragglers.get(v.id)
            if previous is not None and not previous.done():
                # Its last fetch still holds a worker; queueing another would starve other venues
                err = UpstreamTimeout("previous fetch still running", venue_id=v.id)
                failures[v.id] = VenueFailure(v.id, type(err).__name__, str(err))
                logger.warning("Venue %s skipped: previous fetch still running", v.id)
                continue
            self._stragglers.pop(v.id, None)
            futures[self._executor.submit(self._fetch_and_normalize, v)] = v
        _done, not_done = wait(futures, timeout=self._fetch_timeout)

        for fut, venue in futures.items():
            if fut in not_done:
                if not fut.cancel():
                    self._stragglers[venue.id] = fut
                err = UpstreamTimeout(
                    f"no result within {self._fetch_timeout:g}s", venue_id=venue.id
                )
                failures[venue.id] = VenueFailure(venue.id, type(err).__name__, str(err))
                logger.warning("Venue %s timed out after %ss", venue.id, self._fetch_timeout)
                continue
            try:
                parks[venue.id] = fut.result()
            except FetchError as e:
                failures[venue.id] = VenueFailure(venue.id, type(e).__name__, str(e))
            except Exception as e:
                logger.warning("Venue %s failed unexpectedly: %s", venue.id, e, exc_info=True)
                failures[venue.id] = VenueFailure(venue.id, type(e).__name__, str(e))

        snapshot = Snapshot(
            parks=tuple(parks[v.id] for v in venues if v.id in parks),
            last_updated=self._clock(),
        )
        events = self._engine.evaluate(snapshot)
        dispatch_failures = self._dispatch(events)
        report = CycleReport(
            snapshot=snapshot,
            started_at=started,
            finished_at=self._clock(),
            failures=failures,
            events=tuple(events),
            dispatch_failures=tuple(dispatch_failures),
        )
        logger.info(
            "Wait times cycle: %s/%s venues ok, %s attractions, %s notifications%s",
            len(snapshot.parks),
            len(venues),
            sum(len(p.attractions) for p in snapshot.parks),
            len(events),
            f", failed: {sorted(failures)}" if failures else "",
        )
        return report

    def _dispatch(self, events: list[NotificationEvent]) -> list[str]:
        """Hand each event to the dispatcher once. Returns rule ids whose delivery failed."""
        if self._dispatcher is None or not events:
            return []
        failed = []
        for event in events:
            try:
                if not self._dispatcher.dispatch(event):
                    raise DispatchFailure(f"dispatcher rejected notification for rule {event.rule_id}")
            except Exception as e:
                failed.append(event.rule_id)
                logger.warning("Notification dispatch failed for rule %s: %s", event.rule_id, e)
        return failed
