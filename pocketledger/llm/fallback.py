"""Rule-based interpretation used when no language model is configured.

Both entry points return ``None`` when nothing matches; that is the normal
"treat it as chat" outcome, not an error.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

from pocketledger.ledger import periods
from pocketledger.ledger.categories import infer_category, normalize_text
from pocketledger.models.schemas import Query, RegisterOne

_EXPENSE_VERBS = ("spent", "paid", "bought", "gastei", "paguei", "comprei")
_INCOME_VERBS = ("received", "earned", "recebi", "ganhei")

_TRANSACTION_RE = re.compile(
    r"^(?:i\s+|eu\s+)?(?:just\s+)?"
    r"(?P<verb>" + "|".join(_EXPENSE_VERBS + _INCOME_VERBS) + r")\s+"
    r"(?:r\$|\$|usd|brl)?\s*"
    r"(?P<amount>\d[\d.,]*\d|\d)\s*"
    r"(?:reais|real|dollars?|bucks|r\$|\$)?\s*"
    r"(?:(?:on|for|in|at|from|with|com|no|na|em|de|do|da|pelo|pela)\s+)?"
    r"(?P<object>.*?)"
    r"(?:\s*,?\s*(?P<when>today|yesterday|hoje|ontem))?"
    r"\s*[.!]*$"
)

_PLAIN_AMOUNT_RE = re.compile(r"\d+(?:[.,]\d{1,2})?")
_GROUPED_AMOUNT_RE = re.compile(
    r"(?P<int>\d{1,3}(?P<sep>[.,])\d{3}(?:(?P=sep)\d{3})*)"
    r"(?:(?!(?P=sep))[.,](?P<cents>\d{1,2}))?"
)

_DAY_WORDS = {"today": "today", "hoje": "today", "yesterday": "yesterday", "ontem": "yesterday"}

_SPEND = r"(?:how much (?:did|have) i (?:spend|spent)|how much i spent|quanto (?:eu )?gastei)"
_EARN = r"(?:how much (?:did|have) i (?:earn|earned|receive|received|make|made)|quanto (?:eu )?(?:ganhei|recebi))"

_PERIOD_PHRASES: list[tuple[str, str]] = [
    (r"today|hoje", "today"),
    (r"yesterday|ontem", "yesterday"),
    (r"last week|semana passada", "last_week"),
    (r"this week|essa semana|esta semana|nesta semana|na semana", "week"),
    (r"last month|mes passado", "last_month"),
    (r"this month|esse mes|este mes|neste mes|no mes", "month"),
    (r"last year|ano passado", "last_year"),
    (r"this year|esse ano|este ano|neste ano", "year"),
]

# First match wins, so the more specific phrases come first.
QUERY_PATTERNS: list[tuple[re.Pattern, str, str]] = [
    *(
        (re.compile(rf"{_SPEND}\b.*\b(?:{phrase})\b"), period, "expenses")
        for phrase, period in _PERIOD_PHRASES
    ),
    *(
        (re.compile(rf"{_EARN}\b.*\b(?:{phrase})\b"), period, "income")
        for phrase, period in _PERIOD_PHRASES
    ),
    (re.compile(rf"{_SPEND}"), "month", "expenses"),
    (re.compile(rf"{_EARN}"), "month", "income"),
    (re.compile(r"\b(?:what['’]?s|what is|show|check) (?:my )?balance\b|\bmy balance\b|\bqual (?:e )?(?:o )?meu saldo\b|\bmeu saldo\b"), "month", "balance"),
    (re.compile(r"^\s*(?:balance|saldo)\s*[?!.]*$"), "month", "balance"),
    (re.compile(r"\b(?:my expenses|my spending|meus gastos|minhas despesas)\b"), "month", "expenses"),
    (re.compile(r"\b(?:my income|minhas receitas)\b"), "month", "income"),
    (re.compile(r"\b(?:summary|resumo|how are my finances|como estao minhas financas)\b"), "month", "summary"),
]


def parse_amount(raw: str) -> Decimal | None:
    """Parse '50', '50,50', '1,500', '1.500,00' or '1,500.50'; anything else is None.

    A separator followed by exactly three digits groups thousands. The
    decimal separator, if any, must differ from the grouping one.
    """
    raw = (raw or "").strip()
    grouped = _GROUPED_AMOUNT_RE.fullmatch(raw)
    if grouped:
        normalized = grouped.group("int").replace(grouped.group("sep"), "")
        if grouped.group("cents"):
            normalized += "." + grouped.group("cents")
    elif _PLAIN_AMOUNT_RE.fullmatch(raw):
        normalized = raw.replace(",", ".")
    else:
        return None

    try:
        value = Decimal(normalized)
    except InvalidOperation:
        return None
    return value if value > 0 else None


def try_parse_transaction(text: str, now: datetime) -> RegisterOne | None:
    normalized = normalize_text(text)
    match = _TRANSACTION_RE.match(normalized)
    if not match:
        return None

    amount = parse_amount(match.group("amount"))
    if amount is None:
        return None

    verb = match.group("verb")
    kind = "income" if verb in _INCOME_VERBS else "expense"
    description = match.group("object").strip(" ,.") or verb

    period = _DAY_WORDS.get(match.group("when") or "", "today")
    day = periods.resolve(period, now).start.date()

    return RegisterOne(
        amount=amount,
        kind=kind,
        category=infer_category(description, kind),
        description=description,
        date=day,
    )


def try_parse_query(text: str) -> Query | None:
    normalized = normalize_text(text)
    if not normalized:
        return None
    for pattern, period, kind in QUERY_PATTERNS:
        if pattern.search(normalized):
            return Query(period=period, kind=kind)
    return None
