from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def format_money(amount, currency: str = "$", decimal_separator: str = ".") -> str:
    """Format an amount as '$ 1,234.50' (or 'R$ 1.234,50' with a comma separator)."""
    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{value:,.2f}"
    if decimal_separator != ".":
        grouping = "." if decimal_separator == "," else ","
        text = text.replace(",", "\0").replace(".", decimal_separator).replace("\0", grouping)
    return f"{currency} {text}".strip()


def format_date_label(when: date | datetime, now: datetime) -> str:
    """'Today', 'Yesterday', or 'Monday, 14/07/2025'. Time of day is ignored."""
    day = when.date() if isinstance(when, datetime) else when
    today = now.date()

    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{WEEKDAYS[day.weekday()]}, {day.strftime('%d/%m/%Y')}"
