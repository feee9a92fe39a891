"""Consecutive-visit streak, computed on UTC calendar days."""

from datetime import date, datetime, timedelta, timezone

from .models import StreakRecord


def utc_today(now: datetime | None = None) -> date:
    """UTC calendar date of `now` (naive datetimes are taken as UTC)."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date()


def advance_streak(
    count: int, last_visit_date: date | None, now: datetime | None = None
) -> StreakRecord:
    """
    Apply one app-open to a stored streak.

    - no previous visit: count becomes 1
    - already visited today: unchanged
    - visited yesterday: count + 1
    - anything else (a gap, or a clock that went backwards): reset to 1

    The visit date is always moved to today.
    """
    today = utc_today(now)

    if last_visit_date is None:
        count = 1
    elif last_visit_date == today:
        pass
    elif last_visit_date == today - timedelta(days=1):
        count += 1
    else:
        count = 1

    return StreakRecord(count=count, last_visit_date=today)


def parse_visit_date(value: str | None) -> date | None:
    """Parse a stored 'YYYY-MM-DD' visit date; unreadable values count as no visit."""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None
