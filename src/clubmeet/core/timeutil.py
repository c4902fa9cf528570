"""Civil-date helpers for the fixed service timezone.

Meetings and subscriptions are keyed by civil dates in one configured
timezone (Asia/Kolkata by default), while the conferencing services speak
aware instants. Everything that crosses that boundary goes through here so
"today" and "the day window" mean the same thing in every component.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from src.clubmeet.core.errors import ValidationError


def get_zone(tz_name: str) -> ZoneInfo:
    return ZoneInfo(tz_name)


def civil_today(tz_name: str, now: datetime | None = None) -> date:
    """Return today's civil date in the given timezone.

    Args:
        tz_name: IANA timezone name.
        now: Optional aware instant to evaluate instead of the wall clock.

    Returns:
        The civil date at ``now`` in ``tz_name``.
    """
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(get_zone(tz_name)).date()


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` wall-clock time.

    Raises:
        ValidationError: If the value is not a valid 24-hour time.
    """
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except ValueError as exc:
        raise ValidationError(f"Invalid time (expected HH:MM): {value!r}") from exc


def combine_civil(day: date, hhmm: str, tz_name: str) -> datetime:
    """Combine a civil date and an ``HH:MM`` time into an aware UTC instant."""
    local = datetime.combine(day, parse_hhmm(hhmm), tzinfo=get_zone(tz_name))
    return local.astimezone(timezone.utc)


def meeting_window(
    day: date, hhmm: str, duration_minutes: int, tz_name: str
) -> tuple[datetime, datetime]:
    """Return the (start, end) UTC instants of a meeting on a civil day."""
    if duration_minutes <= 0:
        raise ValidationError("Meeting duration must be positive.")
    start = combine_civil(day, hhmm, tz_name)
    return start, start + timedelta(minutes=duration_minutes)


def day_window(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """Return the ``[00:00, next 00:00)`` window of a civil day as UTC instants."""
    zone = get_zone(tz_name)
    start = datetime.combine(day, time(0, 0), tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def format_ddmmyy(day: date) -> str:
    return day.strftime("%d/%m/%y")
