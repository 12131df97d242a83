"""
Environment configuration for the alert notification job.

Values are read once at import time from the process environment (and a
local .env file, if present).
"""

import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()

# Delivery channel
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
NOTIFICATION_FROM_EMAIL = os.getenv(
    "NOTIFICATION_FROM_EMAIL", "alerts@pharmacy-alerts.app"
)
NOTIFICATION_FROM_NAME = os.getenv("NOTIFICATION_FROM_NAME", "Pharmacy Alerts")

# Frontend base URL for links in emails
FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "http://localhost:5173")

# Scheduler
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
NOTIFICATION_TIMEZONE = os.getenv("NOTIFICATION_TIMEZONE", "UTC")

# Lock that keeps runs from overlapping across processes
RUN_LOCK_URL = os.getenv("RUN_LOCK_URL", CELERY_BROKER_URL)

# Fixed alert thresholds
DEFAULT_LOW_STOCK_THRESHOLD = 10
DEFAULT_EXPIRY_WINDOW_DAYS = 30
DEFAULT_MAX_ITEMS = 5
DEFAULT_NOTIFICATION_HOUR = 9
DEFAULT_NOTIFICATION_MINUTE = 0
DEFAULT_RUN_LOCK_TIMEOUT_SECONDS = 3600


class AlertThresholds(BaseModel):
    """Constants the alert rules compare against."""

    model_config = ConfigDict(frozen=True)

    low_stock_threshold: int = Field(DEFAULT_LOW_STOCK_THRESHOLD, ge=1)
    expiry_window_days: int = Field(DEFAULT_EXPIRY_WINDOW_DAYS, ge=1)
    max_items: int = Field(DEFAULT_MAX_ITEMS, ge=1)


def _int_from_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        print(f"⚠️  {name}={raw!r} is not an integer, using {default}")
        return default
    if value < minimum:
        print(f"⚠️  {name}={value} is below {minimum}, using {default}")
        return default
    return value


def load_thresholds() -> AlertThresholds:
    """Build alert thresholds, honouring LOW_STOCK_THRESHOLD etc. overrides."""
    return AlertThresholds(
        low_stock_threshold=_int_from_env(
            "LOW_STOCK_THRESHOLD", DEFAULT_LOW_STOCK_THRESHOLD, minimum=1
        ),
        expiry_window_days=_int_from_env(
            "EXPIRY_WINDOW_DAYS", DEFAULT_EXPIRY_WINDOW_DAYS, minimum=1
        ),
        max_items=_int_from_env("ALERT_MAX_ITEMS", DEFAULT_MAX_ITEMS, minimum=1),
    )


def get_schedule_time() -> tuple[int, int]:
    """Hour and minute of the daily run (defaults to 09:00)."""
    hour = _int_from_env("NOTIFICATION_HOUR", DEFAULT_NOTIFICATION_HOUR)
    minute = _int_from_env("NOTIFICATION_MINUTE", DEFAULT_NOTIFICATION_MINUTE)
    if hour > 23:
        print(f"⚠️  NOTIFICATION_HOUR={hour} is out of range, using 9")
        hour = DEFAULT_NOTIFICATION_HOUR
    if minute > 59:
        print(f"⚠️  NOTIFICATION_MINUTE={minute} is out of range, using 0")
        minute = DEFAULT_NOTIFICATION_MINUTE
    return hour, minute


def get_notification_timezone() -> ZoneInfo:
    """Timezone used for the schedule, "today" boundaries and dates in emails."""
    try:
        return ZoneInfo(NOTIFICATION_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        print(f"⚠️  Unknown NOTIFICATION_TIMEZONE {NOTIFICATION_TIMEZONE!r}, using UTC")
        return ZoneInfo("UTC")


def get_run_lock_timeout() -> int:
    """Seconds before a held run lock expires (defaults to one hour)."""
    return _int_from_env(
        "RUN_LOCK_TIMEOUT_SECONDS", DEFAULT_RUN_LOCK_TIMEOUT_SECONDS, minimum=1
    )
