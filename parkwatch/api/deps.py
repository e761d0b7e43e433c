"""FastAPI dependencies: components built once in the app lifespan and kept on app.state."""
from fastapi import Request

from parkwatch.scheduler.wait_times_job import WaitTimesScheduler
from parkwatch.services.aggregator import WaitTimesAggregator
from parkwatch.services.alerts import AlertEngine
from parkwatch.services.dispatch import NotificationInbox
from parkwatch.services.registry import VenueRegistry


def get_registry(request: Request) -> VenueRegistry:
    return request.app.state.registry


def get_engine(request: Request) -> AlertEngine:
    return request.app.state.engine


def get_aggregator(request: Request) -> WaitTimesAggregator:
    return request.app.state.aggregator


def get_scheduler(request: Request) -> WaitTimesScheduler:
    return request.app.state.scheduler


def get_inbox(request: Request) -> NotificationInbox:
    return request.app.state.inbox
