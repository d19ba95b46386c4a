"""Unit tests for the duration calculator."""

from datetime import datetime, timezone

import pytest

from rental_booking.services.duration import (
    MIN_DURATION,
    compute_duration,
    elapsed_milliseconds,
    format_duration,
    parse_timestamp,
)


def test_three_day_rental():
    duration = compute_duration("2025-03-03T10:00:00", "2025-03-06T10:00:00")

    assert duration.total_days == 3
    assert duration.total_hours == 72
    assert duration.is_valid


def test_partial_day_rental():
    duration = compute_duration("2025-03-03T10:00", "2025-03-04T16:00")

    assert duration.total_days == pytest.approx(1.25)
    assert duration.total_hours == 30


def test_short_rental_is_floored():
    """A one-minute rental still reports the minimum duration."""
    duration = compute_duration("2025-03-03T10:00:00", "2025-03-03T10:01:00")

    assert duration.total_days == MIN_DURATION
    assert duration.total_hours == pytest.approx(1 / 60)


def test_end_before_start_is_zero():
    duration = compute_duration("2025-01-01T10:00", "2025-01-01T09:00")

    assert duration.total_days == 0
    assert duration.total_hours == 0
    assert not duration.is_valid


def test_equal_dates_are_zero():
    duration = compute_duration("2025-01-01T10:00", "2025-01-01T10:00")

    assert duration.total_days == 0
    assert duration.total_hours == 0


@pytest.mark.parametrize("start,end", [
    (None, "2025-01-02T10:00"),
    ("2025-01-01T10:00", None),
    ("", ""),
    ("not-a-date", "2025-01-02T10:00"),
])
def test_missing_or_invalid_dates_are_zero(start, end):
    duration = compute_duration(start, end)

    assert duration.total_days == 0
    assert duration.total_hours == 0


def test_offsets_are_normalised_to_utc():
    """Same instant written with different offsets has no elapsed time."""
    assert elapsed_milliseconds("2025-01-01T12:00:00+02:00", "2025-01-01T10:00:00Z") == 0


@pytest.mark.parametrize("value, expected", [
    ("2025-01-01T10:00:00.5", datetime(2025, 1, 1, 10, 0, 0, 500000)),
    ("2025-01-01T10:00:00.123Z", datetime(2025, 1, 1, 10, 0, 0, 123000)),
    ("2025-01-01T10:00:00.5+01:00", datetime(2025, 1, 1, 9, 0, 0, 500000)),
])
def test_parse_timestamp_fractional_seconds(value, expected):
    assert parse_timestamp(value) == expected


def test_fractional_second_rental():
    duration = compute_duration("2025-01-01T10:00:00.5", "2025-01-01T11:00:00.5")

    assert duration.total_hours == pytest.approx(1.0)


def test_parse_timestamp_accepts_datetimes():
    aware = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    assert parse_timestamp(aware) == datetime(2025, 1, 1, 12, 0)
    assert parse_timestamp("2025-01-01T12:00:00Z") == datetime(2025, 1, 1, 12, 0)
    assert parse_timestamp("garbage") is None


@pytest.mark.parametrize("hours,label", [
    (0, "0 hours"),
    (1, "1 hour"),
    (5.9, "5 hours"),
    (24, "1 day"),
    (27, "1 day, 3 hours"),
    (51, "2 days, 3 hours"),
    (49.5, "2 days, 1 hour"),
])
def test_format_duration(hours, label):
    assert format_duration(hours) == label


def test_duration_label():
    duration = compute_duration("2025-03-03T10:00", "2025-03-05T13:30")

    assert duration.label == "2 days, 3 hours"
