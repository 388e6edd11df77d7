from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TransactionKind = Literal["income", "expense"]
QueryKind = Literal["summary", "expenses", "income", "balance", "detailed"]
PeriodToken = Literal[
    "today",
    "yesterday",
    "week",
    "last_week",
    "month",
    "last_month",
    "year",
    "last_year",
    "custom",
]
CalendarDate = date
MessageType = Literal["transaction", "query", "chat"]

PERIOD_TOKENS: tuple[str, ...] = get_args(PeriodToken)
QUERY_KINDS: tuple[str, ...] = get_args(QueryKind)


def _coerce_period(value):
    if isinstance(value, str) and value.strip().lower() in PERIOD_TOKENS:
        return value.strip().lower()
    return "today"


# ── Ledger records ────────────────────────────────────────────────


class User(BaseModel):
    id: int | None = None
    display_name: str
    phone: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)


class UserContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    phone: str
    display_name: str


class Category(BaseModel):
    id: int | None = None
    name: str
    kind: TransactionKind
    is_default: bool = False


class Transaction(BaseModel):
    id: int | None = None
    user_id: int
    category_id: int | None = None
    category: str
    kind: TransactionKind
    amount: Decimal
    description: str
    date: datetime
    source: str = "chat"
    created_at: datetime = Field(default_factory=datetime.now)


class Balance(BaseModel):
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class ConversationTurn(BaseModel):
    id: int | None = None
    user_id: int
    phone: str = ""
    user_message: str
    bot_response: str
    message_type: MessageType = "chat"
    created_at: datetime = Field(default_factory=datetime.now)


class ConversationSummary(BaseModel):
    user_id: int
    summary: str
    message_count: int = 0
    last_updated: datetime = Field(default_factory=datetime.now)


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _ordered(self):
        if self.start > self.end:
            raise ValueError("start must not be after end")
        return self

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


# ── Resolved operations ───────────────────────────────────────────


class RegisterOne(BaseModel):
    op: Literal["register_one"] = "register_one"
    amount: Decimal = Field(gt=0)
    kind: TransactionKind
    category: str = ""
    description: str = ""
    date: CalendarDate | None = None


class RegisterMany(BaseModel):
    op: Literal["register_many"] = "register_many"
    items: list[RegisterOne] = Field(min_length=1)


class Comparison(BaseModel):
    period: PeriodToken = "last_month"
    start_date: date | None = None
    end_date: date | None = None
    specific_day: date | None = None

    coerce_period = field_validator("period", mode="before")(_coerce_period)


class Query(BaseModel):
    op: Literal["query"] = "query"
    period: PeriodToken = "month"
    kind: QueryKind = "summary"
    category: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    specific_day: date | None = None
    comparison: Comparison | None = None

    coerce_period = field_validator("period", mode="before")(_coerce_period)

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value):
        if isinstance(value, str) and value.strip().lower() in QUERY_KINDS:
            return value.strip().lower()
        return "summary"


Operation = Annotated[
    Union[RegisterOne, RegisterMany, Query], Field(discriminator="op")
]


class FreeTextReply(BaseModel):
    text: str


class FinancialSnapshot(BaseModel):
    total: Decimal | None = None
    income_total: Decimal | None = None
    expense_total: Decimal | None = None
    transactions: list[Transaction] | None = None
    by_category: dict[str, dict[str, Decimal]] | None = None


# ── Inbound messages / API payloads ───────────────────────────────


class InboundMessage(BaseModel):
    phone: str
    address: str
    kind: Literal["text", "audio", "other"] = "text"
    text: str | None = None
    audio: bytes | None = None


class CreateUserRequest(BaseModel):
    display_name: str
    phone: str
    is_active: bool = True


class MessageRequest(BaseModel):
    phone: str
    text: str


class MessageResponse(BaseModel):
    reply: str
