"""Symbolic period tokens to concrete date ranges.

Every function here takes ``now`` explicitly so results are a pure function
of their arguments. Weeks start on Monday. Ranges are closed: day-bounded
ends sit at 23:59:59.999 and "to date" periods end at ``now`` itself.
"""

from datetime import date, datetime, time, timedelta

from pocketledger.models.schemas import PERIOD_TOKENS, DateRange

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_END_OF_DAY = time(23, 59, 59, 999000)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, _END_OF_DAY)


def _day_range(day: date) -> DateRange:
    return DateRange(start=start_of_day(day), end=end_of_day(day))


def _custom_range(
    explicit_day: date | None,
    explicit_start: date | None,
    explicit_end: date | None,
    today: date,
) -> DateRange:
    if explicit_day is not None:
        return _day_range(explicit_day)
    if explicit_start is None and explicit_end is None:
        return _day_range(today)

    first = explicit_start or explicit_end
    last = explicit_end or max(today, first)
    if first > last:
        first, last = last, first
    return DateRange(start=start_of_day(first), end=end_of_day(last))


def resolve(
    token: str | None,
    now: datetime,
    explicit_day: date | None = None,
    explicit_start: date | None = None,
    explicit_end: date | None = None,
) -> DateRange:
    """Resolve a period token relative to ``now``.

    Unknown or missing tokens resolve to ``today``: natural-language period
    phrases that don't map cleanly should degrade, not fail.
    """
    token = (token or "").strip().lower()
    if token not in PERIOD_TOKENS:
        token = "today"

    today = now.date()

    if token == "yesterday":
        return _day_range(today - timedelta(days=1))

    if token == "week":
        monday = today - timedelta(days=today.weekday())
        return DateRange(start=start_of_day(monday), end=now)

    if token == "last_week":
        this_monday = today - timedelta(days=today.weekday())
        last_monday = this_monday - timedelta(days=7)
        last_sunday = this_monday - timedelta(days=1)
        return DateRange(start=start_of_day(last_monday), end=end_of_day(last_sunday))

    if token == "month":
        return DateRange(start=start_of_day(today.replace(day=1)), end=now)

    if token == "last_month":
        last_day = today.replace(day=1) - timedelta(days=1)
        return DateRange(
            start=start_of_day(last_day.replace(day=1)), end=end_of_day(last_day)
        )

    if token == "year":
        return DateRange(start=start_of_day(date(today.year, 1, 1)), end=now)

    if token == "last_year":
        year = today.year - 1
        return DateRange(
            start=start_of_day(date(year, 1, 1)), end=end_of_day(date(year, 12, 31))
        )

    if token == "custom":
        return _custom_range(explicit_day, explicit_start, explicit_end, today)

    return _day_range(today)


def format_day(day: date) -> str:
    return day.strftime("%d/%m/%Y")


def period_label(token: str | None, now: datetime, date_range: DateRange) -> str:
    """Human label for a resolved period, e.g. 'Last week' or 'October 2026'."""
    token = (token or "").strip().lower()
    today = now.date()

    if token == "yesterday":
        return "Yesterday"
    if token == "week":
        return "This week"
    if token == "last_week":
        return "Last week"
    if token in ("month", "last_month"):
        month = date_range.start
        return f"{MONTH_NAMES[month.month - 1]} {month.year}"
    if token in ("year", "last_year"):
        return str(date_range.start.year)
    if token == "custom":
        first, last = date_range.start.date(), date_range.end.date()
        if first == last:
            if first == today:
                return "Today"
            return format_day(first)
        return f"{format_day(first)} - {format_day(last)}"
    return "Today"
