"""
Wait-time alert rules: "notify me when <attraction> is at or below N minutes".

The engine is created once at service start (see parkwatch.main) and owns the rule set.
One lock guards rules and their last_fired_at: add/remove/enable calls made while an
evaluate() pass is running wait for the pass to finish.
"""
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any

from parkwatch.core.constants import (
    DEFAULT_COOLDOWN_MINUTES,
    MAX_THRESHOLD_MINUTES,
    MIN_THRESHOLD_MINUTES,
)
from parkwatch.core.errors import InvalidThreshold
from parkwatch.services.types import Snapshot

logger = logging.getLogger(__name__)

UNKNOWN_ATTRACTION_NAME = "Unknown Attraction"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def rule_id_for(attraction_id: str, threshold_minutes: int) -> str:
    """Stable id: one rule per (attraction, threshold)."""
    return f"{attraction_id}-{threshold_minutes}"


@dataclass
class AlertRule:
    id: str
    attraction_id: str
    threshold_minutes: int
    enabled: bool = True
    created_at: datetime = field(default_factory=_utcnow)
    last_fired_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "attraction_id": self.attraction_id,
            "threshold_minutes": self.threshold_minutes,
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat(),
            "last_fired_at": self.last_fired_at.isoformat() if self.last_fired_at else None,
        }


@dataclass(frozen=True)
class NotificationEvent:
    rule_id: str
    attraction_id: str
    attraction_name: str
    current_minutes: int
    threshold_minutes: int
    fired_at: datetime

    @property
    def title(self) -> str:
        return "Wait Time Alert"

    @property
    def message(self) -> str:
        return (
            f"{self.attraction_name} is now {self.current_minutes} minutes "
            f"(target: {self.threshold_minutes} min)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "attraction_id": self.attraction_id,
            "attraction_name": self.attraction_name,
            "current_minutes": self.current_minutes,
            "threshold_minutes": self.threshold_minutes,
            "fired_at": self.fired_at.isoformat(),
            "title": self.title,
            "message": self.message,
        }


def validate_threshold(threshold_minutes: Any) -> int:
    if isinstance(threshold_minutes, bool) or not isinstance(threshold_minutes, int):
        raise InvalidThreshold(f"threshold_minutes must be an integer, got {threshold_minutes!r}")
    if not MIN_THRESHOLD_MINUTES <= threshold_minutes <= MAX_THRESHOLD_MINUTES:
        raise InvalidThreshold(
            f"threshold_minutes must be between {MIN_THRESHOLD_MINUTES} and "
            f"{MAX_THRESHOLD_MINUTES}, got {threshold_minutes}"
        )
    return threshold_minutes


class AlertEngine:
    def __init__(
        self,
        cooldown: timedelta = timedelta(minutes=DEFAULT_COOLDOWN_MINUTES),
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._cooldown = cooldown
        self._clock = clock
        self._rules: dict[str, AlertRule] = {}
        self._lock = threading.Lock()
        self._stats = {"evaluations": 0, "fired": 0, "suppressed": 0}

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    # --- Rule management ---

    def add_rule(self, attraction_id: str, threshold_minutes: int) -> str:
        """
        Register a rule and return its id. Re-adding the same (attraction, threshold) keeps the
        existing rule and its cooldown state, and re-enables it if it was disabled.
        """
        attraction_id = (attraction_id or "").strip() if isinstance(attraction_id, str) else ""
        if not attraction_id:
            raise InvalidThreshold("attraction_id is required")
        threshold = validate_threshold(threshold_minutes)
        rid = rule_id_for(attraction_id, threshold)
        with self._lock:
            existing = self._rules.get(rid)
            if existing is not None:
                if not existing.enabled:
                    existing.enabled = True
                    logger.info("Alert rule re-enabled: %s", rid)
            else:
                self._rules[rid] = AlertRule(
                    id=rid,
                    attraction_id=attraction_id,
                    threshold_minutes=threshold,
                    created_at=self._clock(),
                )
                logger.info("Alert rule added: %s (<= %s min)", attraction_id, threshold)
        return rid

    def remove_rule(self, rule_id: str) -> None:
        with self._lock:
            if self._rules.pop(rule_id, None) is not None:
                logger.info("Alert rule removed: %s", rule_id)

    def set_enabled(self, rule_id: str, enabled: bool) -> AlertRule | None:
        """Enable/disable a rule. Returns a copy of the updated rule, or None if unknown."""
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                return None
            rule.enabled = enabled
            return replace(rule)

    def get_rule(self, rule_id: str) -> AlertRule | None:
        with self._lock:
            rule = self._rules.get(rule_id)
            return replace(rule) if rule else None

    def list_rules(self) -> list[AlertRule]:
        with self._lock:
            return [replace(r) for r in self._rules.values()]

    def list_active_rules(self) -> list[AlertRule]:
        with self._lock:
            return [replace(r) for r in self._rules.values() if r.enabled]

    def find_rule_for_attraction(self, attraction_id: str) -> AlertRule | None:
        with self._lock:
            for r in self._rules.values():
                if r.enabled and r.attraction_id == attraction_id:
                    return replace(r)
        return None

    # --- Evaluation ---

    def evaluate(self, snapshot: Snapshot) -> list[NotificationEvent]:
        """
        Check every enabled rule against the snapshot's sample for its attraction.
        Fires when the attraction is operating at or below the threshold and the rule has not
        fired within the cooldown window. Missing or non-operating samples are skipped.
        """
        fired: list[NotificationEvent] = []
        with self._lock:
            now = self._clock()
            self._stats["evaluations"] += 1
            for rule in self._rules.values():
                if not rule.enabled:
                    continue
                sample = snapshot.sample_for(rule.attraction_id)
                if sample is None or not sample.is_operating:
                    continue
                if sample.minutes > rule.threshold_minutes:
                    continue
                if rule.last_fired_at is not None and now - rule.last_fired_at <= self._cooldown:
                    self._stats["suppressed"] += 1
                    continue
                rule.last_fired_at = now
                attraction = snapshot.attraction(rule.attraction_id)
                fired.append(
                    NotificationEvent(
                        rule_id=rule.id,
                        attraction_id=rule.attraction_id,
                        attraction_name=attraction.name if attraction else UNKNOWN_ATTRACTION_NAME,
                        current_minutes=sample.minutes,
                        threshold_minutes=rule.threshold_minutes,
                        fired_at=now,
                    )
                )
            self._stats["fired"] += len(fired)
        if fired:
            logger.info("Alert evaluation fired %s notifications", len(fired))
        return fired

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                **self._stats,
                "rules_count": len(self._rules),
                "enabled_rules": sum(1 for r in self._rules.values() if r.enabled),
                "cooldown_minutes": self._cooldown.total_seconds() / 60,
            }

