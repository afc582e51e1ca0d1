"""Shared datetime parsing and UTC conversion helpers.

The aggregates service reports submission dates as ``YYYYMMDD`` strings;
time series points are emitted as UTC epoch milliseconds for chart
consumers.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_telemetry_date(value: Any) -> Optional[date]:
    """Parse ``YYYYMMDD`` or ISO ``YYYY-MM-DD`` into a :class:`date`.

    Returns *None* on invalid or empty input rather than raising.
    """
    if isinstance(value, datetime):
        return to_utc(value).date()
    if isinstance(value, date):
        return value
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for fmt in ("%Y%m%d", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is UTC-aware."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def date_to_epoch_ms(value: date) -> int:
    """Midnight UTC of *value* as epoch milliseconds."""
    start = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return int((start - _EPOCH).total_seconds() * 1000)
