"""
Error taxonomy for the polling/alerting core, plus the helper routes use to turn
engine errors into HTTP responses.

Per-venue errors (FetchError and subclasses) are recovered by the aggregator; per-record
errors (MalformedRecord) never leave the normalizer; caller errors (InvalidThreshold)
surface to the caller with no state change.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ParkWatchError(Exception):
    """Base class for all errors raised by parkwatch."""


class UnknownVenue(ParkWatchError, KeyError):
    def __init__(self, venue_id: str):
        super().__init__(venue_id)
        self.venue_id = venue_id

    def __str__(self) -> str:
        return f"Unknown venue: {self.venue_id}"


class FetchError(ParkWatchError):
    """Upstream retrieval failed for one venue."""

    def __init__(self, message: str, *, venue_id: str | None = None):
        super().__init__(message)
        self.venue_id = venue_id


class UpstreamUnavailable(FetchError):
    """Non-2xx response, transport failure, or a body that is not JSON."""

    def __init__(self, message: str, *, venue_id: str | None = None, status_code: int | None = None):
        super().__init__(message, venue_id=venue_id)
        self.status_code = status_code


class UpstreamTimeout(FetchError):
    """The upstream did not answer within the configured deadline."""


class MalformedRecord(ParkWatchError):
    """One upstream record could not be mapped; the record is dropped."""


class InvalidThreshold(ParkWatchError, ValueError):
    """Alert threshold outside the accepted range (or otherwise unusable rule input)."""


class DispatchFailure(ParkWatchError):
    """The notification dispatcher rejected or failed to deliver an event."""


# ---------------------------------------------------------------------------
# HTTP mapping: (exception type, status_code). First match wins.
# ---------------------------------------------------------------------------

STATUS_UNPROCESSABLE = 422
STATUS_NOT_FOUND = 404
STATUS_SERVICE_UNAVAILABLE = 503
STATUS_INTERNAL_ERROR = 500

ERROR_STATUS_RULES: list[tuple[type[Exception], int]] = [
    (InvalidThreshold, STATUS_UNPROCESSABLE),
    (UnknownVenue, STATUS_NOT_FOUND),
    (FetchError, STATUS_SERVICE_UNAVAILABLE),
]


def error_to_http(exc: Exception) -> HTTPException:
    """
    Map a parkwatch exception into an HTTPException.
    Uses ERROR_STATUS_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code in ERROR_STATUS_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
