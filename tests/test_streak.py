from datetime import date, datetime, timedelta, timezone

from sermon_sync.streak import advance_streak, parse_visit_date, utc_today


def at(day: date, hour: int = 12) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc)


def test_first_visit_starts_at_one():
    record = advance_streak(0, None, at(date(2024, 3, 1)))
    assert record.count == 1
    assert record.last_visit_date == date(2024, 3, 1)


def test_consecutive_day_increments():
    record = advance_streak(5, date(2024, 3, 1), at(date(2024, 3, 2)))
    assert record.count == 6
    assert record.last_visit_date == date(2024, 3, 2)


def test_gap_resets():
    record = advance_streak(5, date(2024, 3, 1), at(date(2024, 3, 4)))
    assert record.count == 1
    assert record.last_visit_date == date(2024, 3, 4)


def test_same_day_is_unchanged():
    record = advance_streak(5, date(2024, 3, 1), at(date(2024, 3, 1)))
    assert record.count == 5


def test_same_day_is_idempotent():
    """Applying the same day twice leaves the count where the first call put it."""
    now = at(date(2024, 3, 2))
    first = advance_streak(5, date(2024, 3, 1), now)
    second = advance_streak(first.count, first.last_visit_date, now)
    assert first == second


def test_clock_moved_backwards_resets():
    record = advance_streak(9, date(2024, 3, 10), at(date(2024, 3, 8)))
    assert record.count == 1
    assert record.last_visit_date == date(2024, 3, 8)


def test_month_and_year_boundaries():
    assert advance_streak(2, date(2024, 2, 29), at(date(2024, 3, 1))).count == 3
    assert advance_streak(2, date(2023, 12, 31), at(date(2024, 1, 1))).count == 3


def test_comparison_is_on_utc_day():
    """23:30 at UTC-5 is already the next UTC day."""
    local = datetime(2024, 3, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert utc_today(local) == date(2024, 3, 2)

    record = advance_streak(3, date(2024, 3, 1), local)
    assert record.count == 4
    assert record.last_visit_date == date(2024, 3, 2)


def test_naive_datetime_is_taken_as_utc():
    assert utc_today(datetime(2024, 3, 1, 23, 59)) == date(2024, 3, 1)


def test_parse_visit_date():
    assert parse_visit_date("2024-03-01") == date(2024, 3, 1)
    assert parse_visit_date("2024-03-01T00:00:00.000Z") == date(2024, 3, 1)
    assert parse_visit_date(None) is None
    assert parse_visit_date("yesterday") is None
