"""themeparks.wiki API config. Defaults come from parkwatch.config.Settings; ThemeParksClient args override."""
from parkwatch.config import settings


class ThemeParksConfig:
    """Base URL, timeout and identification for the themeparks.wiki API."""

    __slots__ = ("base_url", "timeout", "user_agent")

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        self.base_url = (base_url or settings.themeparks_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.user_agent = (user_agent or settings.user_agent).strip()

    def headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }
