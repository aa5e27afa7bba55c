"""Wall-clock arithmetic for turnaround-time (TAT) metrics.

All times are local ``HH:MM`` strings. A span is assumed to cover at most one
midnight: an end earlier than the start wraps to the next day, so spans longer
than 24 hours cannot be represented.
"""
from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import NamedTuple

from kpi_backend.core.validation import ValidationError

MINUTES_PER_DAY = 24 * 60
SHORT_PLACEHOLDER = "—"
REPORT_PLACEHOLDER = "-"

MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


class DurationFields(NamedTuple):
    minutes: int
    decimal_hours: float
    formatted: str


def parse_clock(value: str) -> tuple[int, int]:
    match = _CLOCK_PATTERN.match(str(value).strip())
    if not match:
        raise ValidationError(f"invalid time of day: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f"invalid time of day: {value!r}")
    return hour, minute


def normalize_clock(value: str) -> str:
    """Validated time of day in zero-padded ``HH:MM`` form, so stored times sort as text."""

    hour, minute = parse_clock(value)
    return f"{hour:02d}:{minute:02d}"


def parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"invalid date: {value!r}") from exc


def month_name(value: str) -> str:
    return MONTH_NAMES[parse_iso_date(value).month - 1]


def compute_duration_minutes(start: str, end: str) -> int:
    start_hour, start_minute = parse_clock(start)
    end_hour, end_minute = parse_clock(end)
    raw = (end_hour * 60 + end_minute) - (start_hour * 60 + start_minute)
    if raw < 0:
        raw += MINUTES_PER_DAY
    return raw


def to_decimal_hours(minutes: int) -> float:
    hours = Decimal(minutes) / Decimal(60)
    return float(hours.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP))


def to_formatted_duration(minutes: int) -> str:
    hours, rest = divmod(int(minutes), 60)
    return f"{hours:02d}:{rest:02d}:00"


def to_short_duration(minutes: float | None) -> str:
    if minutes is None:
        return SHORT_PLACEHOLDER
    whole = int(round(minutes))
    # sub-minute spans round to zero and show the placeholder too
    if whole <= 0:
        return SHORT_PLACEHOLDER
    return f"{whole // 60:02d}:{whole % 60:02d}"


def format_report_duration(minutes: float | None) -> str:
    """Render a possibly fractional minute count for exported tables."""

    if minutes is None or minutes <= 0:
        return REPORT_PLACEHOLDER
    return to_formatted_duration(int(minutes))


def format_hours_minutes(minutes: float | None) -> str:
    """Floor a possibly fractional minute count to ``HH:MM`` for analytics tables."""

    if minutes is None or minutes <= 0:
        return REPORT_PLACEHOLDER
    hours, rest = divmod(int(minutes), 60)
    return f"{hours:02d}:{rest:02d}"


def duration_fields(start: str, end: str) -> DurationFields:
    minutes = compute_duration_minutes(start, end)
    return DurationFields(minutes, to_decimal_hours(minutes), to_formatted_duration(minutes))
