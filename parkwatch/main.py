"""
FastAPI app entrypoint.

Builds the polling pipeline once per process (registry, upstream client, alert engine,
dispatchers, aggregator, scheduler), starts the scheduler on startup and stops it on shutdown.
"""
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from the project root before settings are read
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from parkwatch.api.routes import alerts, notifications, wait_times
from parkwatch.config import Settings, settings as default_settings
from parkwatch.scheduler.wait_times_job import WaitTimesScheduler
from parkwatch.services.aggregator import WaitTimesAggregator
from parkwatch.services.alerts import AlertEngine
from parkwatch.services.dispatch import FanOutDispatcher, LogDispatcher, NotificationInbox
from parkwatch.services.fetcher import Fetcher, ParkDataSource
from parkwatch.services.registry import VenueRegistry
from parkwatch.services.themeparks import ThemeParksClient, ThemeParksConfig

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, cfg: Settings, source: ParkDataSource | None = None) -> None:
    """Create the pipeline components and attach them to app.state."""
    registry = VenueRegistry.from_resorts(cfg.resort_keys)
    client = None
    if source is None:
        client = ThemeParksClient(
            ThemeParksConfig(
                base_url=cfg.themeparks_base_url,
                timeout=cfg.http_timeout_seconds,
                user_agent=cfg.user_agent,
            )
        )
        source = client
    engine = AlertEngine(cooldown=timedelta(minutes=cfg.alert_cooldown_minutes))
    inbox = NotificationInbox(maxlen=cfg.inbox_size)
    aggregator = WaitTimesAggregator(
        registry,
        Fetcher(registry, source),
        engine,
        FanOutDispatcher([LogDispatcher(), inbox]),
        fetch_timeout=cfg.fetch_timeout_seconds,
        max_workers=cfg.max_fetch_workers,
    )
    app.state.settings = cfg
    app.state.registry = registry
    app.state.client = client
    app.state.engine = engine
    app.state.inbox = inbox
    app.state.aggregator = aggregator
    app.state.scheduler = WaitTimesScheduler(
        aggregator,
        cfg.poll_interval_seconds,
        run_on_start=cfg.run_on_startup,
    )


def create_app(
    cfg: Settings | None = None,
    *,
    source: ParkDataSource | None = None,
    start_scheduler: bool = True,
) -> FastAPI:
    cfg = cfg or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        build_services(app, cfg, source)
        if start_scheduler:
            app.state.scheduler.start()
        logger.info(
            "parkwatch ready: %s parks, polling every %ss",
            len(app.state.registry),
            cfg.poll_interval_seconds,
        )
        yield
        app.state.scheduler.stop()
        app.state.aggregator.close()
        if app.state.client is not None:
            app.state.client.close()

    app = FastAPI(title="parkwatch", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(wait_times.router, tags=["wait-times"])
    app.include_router(alerts.router, tags=["alerts"])
    app.include_router(notifications.router, tags=["notifications"])

    @app.get("/", include_in_schema=False)
    def root():
        return {"message": "parkwatch API", "docs": "/docs", "health": "/health"}

    @app.get("/health")
    def health() -> dict:
        aggregator = app.state.aggregator
        latest = aggregator.latest
        next_run = app.state.scheduler.next_run_time() if app.state.scheduler.is_running else None
        return {
            "status": "ok",
            "state": aggregator.state.value,
            "cycles_completed": aggregator.cycles_completed,
            "last_updated": latest.snapshot.last_updated.isoformat() if latest else None,
            "failed_parks": sorted(latest.failures) if latest else [],
            "next_run_time": next_run.isoformat() if next_run else None,
            "alerts": app.state.engine.stats(),
        }

    return app


logging.basicConfig(
    level=default_settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("parkwatch.main:app", host="0.0.0.0", port=8000)
