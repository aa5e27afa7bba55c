import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from kpi_backend.core.timemodel import (
    compute_duration_minutes,
    duration_fields,
    format_hours_minutes,
    format_report_duration,
    month_name,
    normalize_clock,
    parse_clock,
    to_decimal_hours,
    to_formatted_duration,
    to_short_duration,
)
from kpi_backend.core.validation import ValidationError


@pytest.mark.parametrize(
    ("start", "end", "expected"),
    [
        ("09:00", "09:30", 30),
        ("09:00", "09:00", 0),
        ("00:00", "23:59", 1439),
        ("8:05", "17:45", 580),
    ],
)
def test_same_day_duration(start, end, expected):
    assert compute_duration_minutes(start, end) == expected


def test_duration_wraps_past_midnight():
    assert compute_duration_minutes("23:50", "00:10") == 20
    assert compute_duration_minutes("22:00", "01:15") == 1440 - (22 * 60 - 75)


def test_end_before_start_is_read_as_next_day():
    # no multi-day spans: an earlier end time always means "after midnight"
    assert compute_duration_minutes("09:00", "08:30") == 1410


def test_formatted_duration():
    assert to_formatted_duration(125) == "02:05:00"
    assert to_formatted_duration(0) == "00:00:00"
    assert to_formatted_duration(1500) == "25:00:00"


def test_decimal_hours_rounding():
    assert to_decimal_hours(90) == 1.5
    assert to_decimal_hours(1) == 0.017
    assert to_decimal_hours(20) == 0.333
    assert to_decimal_hours(1410) == 23.5


def test_short_duration_placeholder():
    assert to_short_duration(None) == "—"
    assert to_short_duration(0) == "—"
    assert to_short_duration(-5) == "—"
    assert to_short_duration(75) == "01:15"
    assert to_short_duration(59.6) == "01:00"


def test_short_duration_sub_minute_shows_placeholder():
    assert to_short_duration(0.3) == "—"
    assert to_short_duration(0.6) == "00:01"


def test_report_duration_floors_fractional_minutes():
    assert format_report_duration(90.7) == "01:30:00"
    assert format_report_duration(0) == "-"
    assert format_report_duration(None) == "-"


def test_duration_fields_bundle():
    fields = duration_fields("10:00", "11:45")
    assert fields.minutes == 105
    assert fields.decimal_hours == 1.75
    assert fields.formatted == "01:45:00"


@pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "", "12-30"])
def test_parse_clock_rejects_malformed(value):
    with pytest.raises(ValidationError):
        parse_clock(value)


def test_parse_clock_accepts_single_digit_hour():
    assert parse_clock("9:05") == (9, 5)


def test_normalize_clock_zero_pads():
    assert normalize_clock("9:05") == "09:05"
    assert normalize_clock(" 17:30 ") == "17:30"
    with pytest.raises(ValidationError):
        normalize_clock("9:5")


def test_hours_minutes_for_analytics_tables():
    assert format_hours_minutes(75.5) == "01:15"
    assert format_hours_minutes(600) == "10:00"
    assert format_hours_minutes(0) == "-"
    assert format_hours_minutes(None) == "-"


def test_month_name():
    assert month_name("2025-03-14") == "March"
    assert month_name("2024-12-31") == "December"
    with pytest.raises(ValidationError):
        month_name("2025-13-01")
