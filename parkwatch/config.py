"""
Application settings (Pydantic Settings).
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env at the project root (parent of parkwatch/)
_env_path = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    themeparks_base_url: str = "https://api.themeparks.wiki/v1"
    user_agent: str = "parkwatch/0.1"
    # Per-request HTTP timeout; keep below fetch_timeout_seconds so workers finish on their own
    http_timeout_seconds: float = 10.0
    # Deadline for one venue (live + schedule) inside a cycle
    fetch_timeout_seconds: float = 20.0
    poll_interval_seconds: int = 300
    alert_cooldown_minutes: int = 30
    # Comma-separated resort keys from parkwatch/data/parks.py
    resorts: str = "walt-disney-world"
    max_fetch_workers: int = 8
    run_on_startup: bool = True
    inbox_size: int = 100
    log_level: str = "INFO"

    class Config:
        env_prefix = "PARKWATCH_"
        env_file = _env_path
        extra = "ignore"

    @field_validator("themeparks_base_url", mode="after")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        return (v or "").strip().rstrip("/")

    @field_validator("poll_interval_seconds", mode="after")
    @classmethod
    def clamp_interval(cls, v: int) -> int:
        return min(max(v, 30), 3600)

    @field_validator("max_fetch_workers", "inbox_size", mode="after")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        return max(v, 1)

    @field_validator("log_level", mode="after")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @property
    def resort_keys(self) -> list[str]:
        return [s.strip() for s in self.resorts.split(",") if s.strip()]


settings = Settings()
