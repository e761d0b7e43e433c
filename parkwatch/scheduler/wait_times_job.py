"""
Runs every PARKWATCH_POLL_INTERVAL_SECONDS (default 5 min): one wait-times cycle across all
registered parks. Owned by the app process, not by any request or client session.

The job is registered with max_instances=1 / coalesce=True; the aggregator's own
single-flight guard also covers manual refreshes that race the timer.
"""
import logging
import threading
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from parkwatch.core.constants import DEFAULT_POLL_INTERVAL_SECONDS, WAIT_TIMES_JOB_ID
from parkwatch.services.aggregator import CycleReport, WaitTimesAggregator

logger = logging.getLogger(__name__)


def run_wait_times_job(aggregator: WaitTimesAggregator) -> None:
    report = aggregator.tick()
    if report is not None and report.is_partial:
        logger.warning(
            "Wait times job: %s venue(s) failed this cycle: %s",
            len(report.failures),
            ", ".join(f"{f.venue_id} ({f.error})" for f in report.failures.values()),
        )


class WaitTimesScheduler:
    def __init__(
        self,
        aggregator: WaitTimesAggregator,
        interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
        *,
        run_on_start: bool = True,
        scheduler: BackgroundScheduler | None = None,
    ):
        self._aggregator = aggregator
        self._interval = interval_seconds
        self._run_on_start = run_on_start
        self._scheduler = scheduler or self._new_scheduler()
        self._lock = threading.Lock()
        self._started = False
        # A shut-down BackgroundScheduler cannot run jobs again; start() replaces it
        self._shut_down = False

    @staticmethod
    def _new_scheduler() -> BackgroundScheduler:
        return BackgroundScheduler(timezone=timezone.utc)

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._started

    @property
    def interval_seconds(self) -> int:
        return self._interval

    def start(self) -> None:
        """Register the interval job and start the scheduler thread. Calling twice is a no-op."""
        with self._lock:
            if self._started:
                return
            if self._shut_down:
                self._scheduler = self._new_scheduler()
                self._shut_down = False
            job_kwargs = {}
            if self._run_on_start:
                # Default first run is one interval from now
                job_kwargs["next_run_time"] = datetime.now(timezone.utc)
            self._scheduler.add_job(
                run_wait_times_job,
                "interval",
                seconds=self._interval,
                args=[self._aggregator],
                id=WAIT_TIMES_JOB_ID,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
                **job_kwargs,
            )
            self._scheduler.start()
            self._started = True
        logger.info("Wait times scheduler started; polling every %ss", self._interval)

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._scheduler.shutdown(wait=False)
            self._started = False
            self._shut_down = True
        logger.info("Wait times scheduler stopped")

    def refresh_now(self, timeout: float | None = None) -> CycleReport:
        """User-initiated refresh; collapses into the in-flight cycle if there is one."""
        return self._aggregator.refresh(timeout)

    def next_run_time(self) -> datetime | None:
        job = self._scheduler.get_job(WAIT_TIMES_JOB_ID)
        return job.next_run_time if job else None
