# src/cmscrm/utils/timezone.py
from __future__ import annotations

import logging
from datetime import datetime

import pytz

from src.cmscrm.config import settings

# -----------------------------------------------------------------------------
# Configure local timezone with fallback
# -----------------------------------------------------------------------------
try:
    LOCAL_TZ = pytz.timezone(settings.TIMEZONE)
except pytz.UnknownTimeZoneError as exc:
    logging.getLogger(__name__).warning(
        "Invalid TIMEZONE '%s' in environment; falling back to UTC. Error: %s",
        settings.TIMEZONE,
        exc,
    )
    LOCAL_TZ = pytz.utc


def now_local() -> datetime:
    """
    Return the current time as a timezone-aware datetime in the configured local timezone.
    """
    return datetime.now(LOCAL_TZ)


def now_iso() -> str:
    """ISO-8601 timestamp, used by /health."""
    return now_local().isoformat()


def timestamp_ms() -> int:
    """Milliseconds since epoch; prefixes uploaded file names."""
    return int(now_local().timestamp() * 1000)
