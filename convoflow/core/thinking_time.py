"""
Coarse thinking-time windows.

Maps a coarse choice (today, yesterday, last_week, last_month) to a UTC
range. Day boundaries are computed in the user's time zone.

Dependencies: zoneinfo (stdlib)
System role: Thinking-time resolution for captures and conversations
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from convoflow.core.exceptions import ValidationError

DEFAULT_TIMEZONE = "America/Denver"
COARSE_WINDOWS = ("today", "yesterday", "last_week", "last_month")


class ThinkingRange(NamedTuple):
    start_at: datetime
    end_at: datetime


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValidationError(f"Unknown time zone: {name}", field="timezone") from e


def day_bounds(day: date, tz: ZoneInfo) -> ThinkingRange:
    """Start and last millisecond of a local calendar day, in UTC."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    next_start = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return ThinkingRange(
        start.astimezone(timezone.utc),
        (next_start.astimezone(timezone.utc) - timedelta(milliseconds=1)),
    )


def coarse_window_to_thinking_range(
    choice: str,
    now: datetime | None = None,
    tz_name: str = DEFAULT_TIMEZONE,
) -> ThinkingRange:
    """
    Convert a coarse window choice to a UTC thinking range.

    Args:
        choice: today, yesterday, last_week or last_month
        now: Reference time (defaults to current UTC time; naive means UTC)
        tz_name: IANA zone used for day boundaries

    Returns:
        ThinkingRange in UTC

    Raises:
        ValidationError: Unknown choice or time zone
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    tz = _zone(tz_name)
    local_today = now.astimezone(tz).date()

    if choice == "today":
        return day_bounds(local_today, tz)
    if choice == "yesterday":
        return day_bounds(local_today - timedelta(days=1), tz)
    if choice == "last_week":
        return ThinkingRange(
            day_bounds(local_today - timedelta(days=7), tz).start_at,
            day_bounds(local_today, tz).end_at,
        )
    if choice == "last_month":
        now_utc = now.astimezone(timezone.utc)
        return ThinkingRange(now_utc - timedelta(days=30), now_utc)

    raise ValidationError(
        f"Invalid choice. Must be one of: {', '.join(COARSE_WINDOWS)}",
        field="choice",
    )
