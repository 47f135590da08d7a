"""
Centralized timezone utilities for consistent timestamp handling.

All timestamp columns store UTC as naive datetimes. API responses carry a
'Z' suffix so the frontend parses them as UTC and converts to local time
for display.
"""

from datetime import datetime
import pytz

UTC = pytz.UTC


def utcnow_naive() -> datetime:
    """Current UTC time as a naive datetime, matching the column convention."""
    return datetime.now(UTC).replace(tzinfo=None)


def format_datetime_for_api(dt: datetime) -> str | None:
    """
    Convert a datetime to UTC ISO string for API responses.

    Naive datetimes are assumed to already be UTC. Timezone-aware datetimes
    are converted. Returns format: "2026-01-06T20:43:50.245704Z"
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        utc_dt = dt.astimezone(UTC)
        return utc_dt.isoformat().replace('+00:00', 'Z')

    return dt.isoformat() + 'Z'
