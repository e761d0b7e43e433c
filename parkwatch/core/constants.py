"""
Centralized constants for the scheduler and alerting.

Change job IDs or limits here instead of scattering literals across main and routes.
Intervals and timeouts that differ per environment come from config.Settings.
"""

# Scheduler job ID (must match the id used by WaitTimesScheduler.start)
WAIT_TIMES_JOB_ID = "wait_times_poll"

# Alert thresholds accepted by AlertEngine.add_rule (inclusive)
MIN_THRESHOLD_MINUTES = 0
MAX_THRESHOLD_MINUTES = 240

# Sentinel minutes for a sample with no meaningful queue length
NO_WAIT_MINUTES = -1

DEFAULT_COOLDOWN_MINUTES = 30
DEFAULT_POLL_INTERVAL_SECONDS = 5 * 60
DEFAULT_FETCH_TIMEOUT_SECONDS = 20.0

# Recent notifications kept in memory for GET /notifications
NOTIFICATIONS_LIMIT_MAX = 200
