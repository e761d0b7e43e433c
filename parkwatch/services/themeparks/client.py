"""themeparks.wiki API client: lowest level, sends request only. No normalization."""
import logging
from typing import Any

import httpx

from parkwatch.core.errors import UpstreamTimeout, UpstreamUnavailable
from parkwatch.services.themeparks.config import ThemeParksConfig

logger = logging.getLogger(__name__)


class ThemeParksClient:
    """Live data and schedule client. One shared httpx.Client; safe to call from worker threads."""

    def __init__(
        self,
        config: ThemeParksConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config or ThemeParksConfig()
        self._client = httpx.Client(
            base_url=self._config.base_url,
            headers=self._config.headers(),
            timeout=self._config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ThemeParksClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get(self, path: str) -> Any:
        try:
            r = self._client.get(path)
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"GET {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"GET {path} failed: {e}") from e
        if not r.is_success:
            raise UpstreamUnavailable(
                f"themeparks API error: {r.status_code} for {path}",
                status_code=r.status_code,
            )
        try:
            return r.json()
        except ValueError as e:
            logger.debug("Non-JSON body for %s: %s", path, (r.text[:200] if r.text else ""))
            raise UpstreamUnavailable(f"themeparks API returned non-JSON body for {path}") from e

    def get_live(self, entity_id: str) -> Any:
        """GET /entity/{id}/live: liveData list with status and queue times."""
        return self._get(f"/entity/{entity_id}/live")

    def get_schedule(self, entity_id: str) -> Any:
        """GET /entity/{id}/schedule: schedule list of {date, type, openingTime, closingTime}."""
        return self._get(f"/entity/{entity_id}/schedule")
