"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional

# 24-hour clock, hour may be given without the leading zero
TIME_OF_DAY_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def validate_time_string(value: Optional[str]) -> Optional[str]:
    """
    Validate an "HH:MM" time of day and normalize it to zero-padded form.

    Args:
        value: Time string such as "9:05" or "17:30"

    Returns:
        Zero-padded "HH:MM" string

    Raises:
        ValueError: If the string is not a valid 24-hour time
    """
    if value is None:
        return value

    value = value.strip()
    if not TIME_OF_DAY_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")

    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{int(minutes):02d}"


def parse_date(value) -> date:
    """
    Parse a calendar date from a date, datetime or ISO string.

    Datetime strings (e.g. "2024-06-03T00:00:00Z") are accepted and truncated
    to their date part.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Date is required")

    raw = value.strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise ValueError(f"Invalid date format: {value}. Expected YYYY-MM-DD") from e


def validate_date_range(start: date, end: date) -> None:
    """Raise ValueError when start is after end"""
    if start > end:
        raise ValueError("Start date cannot be after end date")
