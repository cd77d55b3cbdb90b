from __future__ import annotations

import re
from datetime import date, datetime, tzinfo

_HHMM = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_hhmm(value: str) -> int:
    """Return minutes since midnight for an ``HH:mm`` (24-hour) string."""
    match = _HHMM.match((value or "").strip())
    if match is None:
        raise ValueError(f"Invalid time format (expected HH:mm): {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_hhmm(value: str) -> str:
    # "9:05" -> "09:05"
    return format_hhmm(parse_hhmm(value))


def within_window(time_of_day: str, start: str, end: str) -> bool:
    """Inclusive on both bounds: start <= time_of_day <= end."""
    current = parse_hhmm(time_of_day)
    return parse_hhmm(start) <= current <= parse_hhmm(end)


def to_local(ts: datetime, tz: tzinfo) -> datetime:
    # Naive timestamps are already in the canteen timezone.
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(tz)


def local_time_of_day(ts: datetime, tz: tzinfo) -> str:
    return to_local(ts, tz).strftime("%H:%M")


def local_date(ts: datetime, tz: tzinfo) -> date:
    return to_local(ts, tz).date()
