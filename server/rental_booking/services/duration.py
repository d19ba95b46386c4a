"""Elapsed rental time between a start and end timestamp."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

MS_PER_HOUR = 3_600_000
MS_PER_DAY = 86_400_000

# Smallest duration reported once a date range is valid; keeps divisors non-zero.
MIN_DURATION = 0.01

Timestamp = Union[str, datetime, None]


@dataclass(frozen=True)
class Duration:
    """Fractional days and hours of a rental; both 0 when the range is invalid."""

    total_days: float = 0.0
    total_hours: float = 0.0

    @property
    def is_valid(self) -> bool:
        return self.total_days > 0

    @property
    def label(self) -> str:
        return format_duration(self.total_hours)


def parse_timestamp(value: Timestamp) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into a naive UTC datetime.

    Relies on the Python 3.11 `datetime.fromisoformat`, which accepts
    fractional seconds of any width.
    Offsets are converted to UTC; naive values are taken as already UTC.
    Returns None for missing or unparseable input.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def elapsed_milliseconds(start: Timestamp, end: Timestamp) -> float:
    """Milliseconds from start to end, NaN when either side is missing or invalid."""
    start_at = parse_timestamp(start)
    end_at = parse_timestamp(end)
    if start_at is None or end_at is None:
        return math.nan
    return (end_at - start_at) / timedelta(milliseconds=1)


def _floored(value: float) -> float:
    if math.isnan(value) or value <= 0:
        return 0.0
    return max(MIN_DURATION, value)


def compute_duration(start: Timestamp, end: Timestamp) -> Duration:
    """
    Derive total days and hours for a rental period.

    A missing date, an unparseable date, or an end at or before the start
    yields zero for both values. Otherwise each value is at least 0.01.
    """
    elapsed = elapsed_milliseconds(start, end)
    return Duration(
        total_days=_floored(elapsed / MS_PER_DAY),
        total_hours=_floored(elapsed / MS_PER_HOUR),
    )


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_duration(total_hours: float) -> str:
    """Render hours as '2 days, 3 hours', '1 day', or '5 hours'."""
    whole_hours = int(math.floor(total_hours)) if total_hours > 0 else 0
    days, hours = divmod(whole_hours, 24)

    if days == 0:
        return _plural(hours, "hour")
    if hours == 0:
        return _plural(days, "day")
    return f"{_plural(days, 'day')}, {_plural(hours, 'hour')}"
