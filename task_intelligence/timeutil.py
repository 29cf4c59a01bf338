"""Instant and calendar-day helpers."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional

UTC = timezone.utc


def ensure_aware(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Attach the local timezone to a naive datetime; leave aware ones alone."""

    if value.tzinfo is None:
        return value.replace(tzinfo=tz or UTC)
    return value


def local_day(value: datetime, tz: Optional[tzinfo] = None) -> date:
    return ensure_aware(value, tz).astimezone(tz or UTC).date()


def start_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, time(0, 0), tzinfo=tz or UTC)


def end_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    """Exclusive end of the day: midnight of the following day."""
    return start_of_day(day + timedelta(days=1), tz)


def at_hour(day: date, hour: int, tz: Optional[tzinfo] = None) -> datetime:
    if hour >= 24:
        return start_of_day(day + timedelta(days=hour // 24), tz) + timedelta(hours=hour % 24)
    return datetime.combine(day, time(hour, 0), tzinfo=tz or UTC)


def iter_days(start: date, end: date):
    """Yield every calendar day in [start, end]."""

    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def iso_week_bounds(now: datetime, tz: Optional[tzinfo] = None) -> tuple[datetime, datetime]:
    """Monday 00:00 of the week containing ``now`` and the following Monday 00:00."""

    today = local_day(now, tz)
    monday = today - timedelta(days=today.weekday())
    return start_of_day(monday, tz), start_of_day(monday + timedelta(days=7), tz)


def format_instant(value: datetime) -> str:
    """Serialize an instant as ISO-8601 UTC with a trailing Z."""

    utc_value = ensure_aware(value).astimezone(UTC)
    text = utc_value.isoformat(timespec="seconds")
    return text.replace("+00:00", "Z")


def parse_instant(raw: str, tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO-8601 instant (``Z`` accepted); naive values are local."""

    text = raw.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text), tz)
