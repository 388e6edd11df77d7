from datetime import datetime, timedelta

from pocketledger.ledger.categories import DEFAULT_CATEGORIES
from pocketledger.ledger.formatting import WEEKDAYS
from pocketledger.ledger.periods import MONTH_NAMES
from pocketledger.models.schemas import PERIOD_TOKENS, QUERY_KINDS, UserContext

REFUSAL_MESSAGE = "I can only help with financial questions."

SYSTEM_PROMPT = """\
You are a personal finance assistant that lives in a chat app. You turn the
user's messages into ledger entries and ledger queries.

CURRENT DATE: {today_long} (ISO: {today_iso})

RULES:
1. Answer ONLY finance-related topics.
2. For anything unrelated to personal finance reply exactly: "{refusal}"
3. Always use the available functions to record transactions or run queries; never pretend you recorded something.
4. Be friendly but concise, and use emojis sparingly.
5. Always address the user by name ({display_name}).
6. Greetings and small talk get a short friendly reply and a reminder of what you can do.

DEFAULT CATEGORIES:
- Expenses: {expense_categories}
- Income: {income_categories}
Pick the closest one; only invent a new category when none fits.

DATES (use the current date as the reference for everything):
- "today" or no date mentioned = {today_iso}
- "yesterday" = {yesterday_iso}
- "the day before yesterday" = {day_before_iso}
- "last monday", "last friday", ... = the most recent past occurrence of that weekday
- "on the 14th" = that day of the current month; "the 14th of last month" = that day of the previous month
Always pass dates as 'YYYY-MM-DD'.

TRANSACTIONS:
- ONE transaction: use register_transaction.
- SEVERAL transactions in the same message: use register_multiple_transactions.
- ALWAYS look for more than one transaction when the message has several amounts or items.
- Words that signal several transactions: "and", "also", "as well", "plus", "in addition".
- "spent 500 on tires and 200 on bodywork" = register_multiple_transactions with 2 items.
- "received 1000 salary and 500 from freelance" = register_multiple_transactions with 2 items.
- "bought food for 50 and also paid 30 for gas" = register_multiple_transactions with 2 items.

QUERIES (query_finances):
- period: {periods}. Weeks start on Monday; "week", "month" and "year" run up to today.
- type: "summary" (overview with categories), "expenses", "income", "balance" or "detailed" (list of transactions).
- For a single specific day use period "custom" with specific_day.
- For an explicit range ("from the 1st to the 10th") use period "custom" with start_date and end_date.
- Filter by category when the user names one ("how much did I spend on food").
- For comparisons ("this month vs last month", "did I spend more than last week?") fill comparison_period
  (and comparison_start_date / comparison_end_date / comparison_specific_day for custom periods).
"""

SUMMARY_PROMPT = """\
Write a concise summary of the following finance conversations, highlighting:
- Main transactions recorded
- The user's spending patterns
- Most used categories
- Recurring questions
{previous}
Conversations:
{conversations}

Summary (200 words max):"""


def build_system_prompt(user: UserContext, now: datetime) -> str:
    today = now.date()
    today_long = (
        f"{WEEKDAYS[today.weekday()]}, {MONTH_NAMES[today.month - 1]} {today.day}, {today.year}"
    )
    return SYSTEM_PROMPT.format(
        today_long=today_long,
        today_iso=today.isoformat(),
        yesterday_iso=(today - timedelta(days=1)).isoformat(),
        day_before_iso=(today - timedelta(days=2)).isoformat(),
        refusal=REFUSAL_MESSAGE,
        display_name=user.display_name,
        expense_categories=", ".join(DEFAULT_CATEGORIES["expense"]),
        income_categories=", ".join(DEFAULT_CATEGORIES["income"]),
        periods=", ".join(f'"{p}"' for p in PERIOD_TOKENS),
    )


def build_summary_prompt(conversations: str, previous: str | None = None) -> str:
    previous_text = f"\nPrevious summary:\n{previous}\n" if previous else ""
    return SUMMARY_PROMPT.format(conversations=conversations, previous=previous_text)


_DATE_FIELD = {
    "type": "string",
    "format": "date",
    "description": "Transaction date as YYYY-MM-DD. Use the current date when none is mentioned.",
}

_TRANSACTION_ITEM = {
    "type": "object",
    "properties": {
        "amount": {"type": "number", "description": "Transaction amount, always positive"},
        "type": {
            "type": "string",
            "enum": ["income", "expense"],
            "description": "Transaction type",
        },
        "category": {"type": "string", "description": "Transaction category"},
        "description": {"type": "string", "description": "Short description"},
        "date": _DATE_FIELD,
    },
    "required": ["amount", "type", "category", "description"],
}

_PERIOD_FIELD = {"type": "string", "enum": list(PERIOD_TOKENS)}
_DAY_FIELD = {"type": "string", "format": "date"}

TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "register_transaction",
            "description": "Record a single expense or income",
            "parameters": _TRANSACTION_ITEM,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "register_multiple_transactions",
            "description": (
                "Record several transactions at once when the user mentions more "
                "than one expense or income in the same message"
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "transactions": {
                        "type": "array",
                        "items": _TRANSACTION_ITEM,
                        "description": "Transactions to record",
                    }
                },
                "required": ["transactions"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "query_finances",
            "description": "Query the user's finances over a period, optionally compared with another period",
            "parameters": {
                "type": "object",
                "properties": {
                    "period": {**_PERIOD_FIELD, "description": "Period to query"},
                    "type": {
                        "type": "string",
                        "enum": list(QUERY_KINDS),
                        "description": "Kind of report",
                    },
                    "category": {"type": "string", "description": "Optional category filter"},
                    "start_date": {**_DAY_FIELD, "description": "Start of a custom range"},
                    "end_date": {**_DAY_FIELD, "description": "End of a custom range"},
                    "specific_day": {**_DAY_FIELD, "description": "A single day to query"},
                    "comparison_period": {
                        **_PERIOD_FIELD,
                        "description": "Period to compare against",
                    },
                    "comparison_start_date": {**_DAY_FIELD},
                    "comparison_end_date": {**_DAY_FIELD},
                    "comparison_specific_day": {**_DAY_FIELD},
                },
                "required": ["period", "type"],
            },
        },
    },
]
