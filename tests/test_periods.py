from datetime import date, datetime, timedelta

import pytest

from pocketledger.ledger import periods
from pocketledger.models.schemas import PERIOD_TOKENS

NOW = datetime(2025, 7, 15, 10, 0)  # a Tuesday


def test_today_covers_the_whole_day():
    r = periods.resolve("today", NOW)
    assert r.start == datetime(2025, 7, 15)
    assert r.end == datetime(2025, 7, 15, 23, 59, 59, 999000)


def test_yesterday_is_today_shifted_back():
    r = periods.resolve("yesterday", NOW)
    assert r.start == datetime(2025, 7, 14)
    assert r.end.date() == date(2025, 7, 14)


def test_week_starts_on_monday_and_runs_to_now():
    r = periods.resolve("week", NOW)
    assert r.start == datetime(2025, 7, 14)
    assert r.start.weekday() == 0
    assert r.end == NOW


@pytest.mark.parametrize("day", range(7, 14))
def test_week_always_starts_monday(day):
    now = datetime(2025, 7, day, 18, 30)
    assert periods.resolve("week", now).start.weekday() == 0


def test_last_week_is_seven_full_days_ending_sunday():
    r = periods.resolve("last_week", NOW)
    assert r.start == datetime(2025, 7, 7)
    assert r.end.date() == date(2025, 7, 13)
    assert r.end.weekday() == 6
    assert r.end.date() - r.start.date() == timedelta(days=6)


def test_last_week_when_today_is_monday():
    r = periods.resolve("last_week", datetime(2025, 7, 14, 8, 0))
    assert r.start == datetime(2025, 7, 7)
    assert r.end.date() == date(2025, 7, 13)


def test_month_and_last_month():
    assert periods.resolve("month", NOW).start == datetime(2025, 7, 1)
    assert periods.resolve("month", NOW).end == NOW

    r = periods.resolve("last_month", NOW)
    assert r.start == datetime(2025, 6, 1)
    assert r.end.date() == date(2025, 6, 30)


def test_last_month_crosses_year_boundary():
    r = periods.resolve("last_month", datetime(2025, 1, 10))
    assert r.start == datetime(2024, 12, 1)
    assert r.end.date() == date(2024, 12, 31)


def test_year_and_last_year():
    assert periods.resolve("year", NOW).start == datetime(2025, 1, 1)
    r = periods.resolve("last_year", NOW)
    assert r.start == datetime(2024, 1, 1)
    assert r.end.date() == date(2024, 12, 31)


def test_custom_single_day():
    r = periods.resolve("custom", NOW, explicit_day=date(2025, 7, 3))
    assert r.start == datetime(2025, 7, 3)
    assert r.end == datetime(2025, 7, 3, 23, 59, 59, 999000)


def test_custom_range_uses_calendar_day_bounds():
    r = periods.resolve(
        "custom", NOW, explicit_start=date(2025, 7, 1), explicit_end=date(2025, 7, 10)
    )
    assert r.start == datetime(2025, 7, 1)
    assert r.end == datetime(2025, 7, 10, 23, 59, 59, 999000)


def test_custom_reversed_bounds_are_swapped():
    r = periods.resolve(
        "custom", NOW, explicit_start=date(2025, 7, 10), explicit_end=date(2025, 7, 1)
    )
    assert r.start == datetime(2025, 7, 1)
    assert r.end.date() == date(2025, 7, 10)


def test_custom_without_bounds_falls_back_to_today():
    assert periods.resolve("custom", NOW) == periods.resolve("today", NOW)


@pytest.mark.parametrize("token", [None, "", "fortnight", "next_month"])
def test_unknown_tokens_resolve_to_today(token):
    assert periods.resolve(token, NOW) == periods.resolve("today", NOW)


@pytest.mark.parametrize("token", [t for t in PERIOD_TOKENS if t != "custom"])
def test_resolution_is_a_pure_function_of_now(token):
    first = periods.resolve(token, NOW)
    second = periods.resolve(token, NOW)
    assert first == second
    assert first.start <= first.end


def test_registered_yesterday_falls_in_yesterday():
    r = periods.resolve("yesterday", NOW)
    assert r.contains(datetime(2025, 7, 14))
    assert not r.contains(datetime(2025, 7, 15))


def test_period_labels():
    assert periods.period_label("today", NOW, periods.resolve("today", NOW)) == "Today"
    assert periods.period_label("last_week", NOW, periods.resolve("last_week", NOW)) == "Last week"
    assert periods.period_label("month", NOW, periods.resolve("month", NOW)) == "July 2025"
    assert periods.period_label("last_month", NOW, periods.resolve("last_month", NOW)) == "June 2025"
    assert periods.period_label("last_year", NOW, periods.resolve("last_year", NOW)) == "2024"
    custom = periods.resolve(
        "custom", NOW, explicit_start=date(2025, 7, 1), explicit_end=date(2025, 7, 5)
    )
    assert periods.period_label("custom", NOW, custom) == "01/07/2025 - 05/07/2025"
