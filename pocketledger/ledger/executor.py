from collections import defaultdict
from datetime import datetime, time
from decimal import ROUND_HALF_UP, Decimal

from loguru import logger
from pydantic import BaseModel

from pocketledger.db.repository import LedgerRepository
from pocketledger.errors import RegistrationError
from pocketledger.ledger import periods
from pocketledger.ledger.categories import DEFAULT_CATEGORY, infer_category
from pocketledger.ledger.formatting import format_date_label, format_money
from pocketledger.models.schemas import (
    Comparison,
    DateRange,
    FinancialSnapshot,
    Query,
    RegisterMany,
    RegisterOne,
    Transaction,
    UserContext,
)

RECENT_LIMIT = 5
DETAILED_LIMIT = 10


class RegistrationResult(BaseModel):
    text: str
    records: list[Transaction]


class QueryResult(BaseModel):
    text: str
    snapshot: FinancialSnapshot


class ComparisonResult(BaseModel):
    main_total: Decimal
    comparison_total: Decimal
    difference: Decimal
    percent_change: float


def compare_totals(main_total, comparison_total) -> ComparisonResult:
    """Difference and percentage change; a zero baseline yields 0%."""
    main_total = Decimal(str(main_total))
    comparison_total = Decimal(str(comparison_total))
    difference = main_total - comparison_total
    if comparison_total == 0:
        percent = 0.0
    else:
        percent = float(difference / comparison_total * 100)
    return ComparisonResult(
        main_total=main_total,
        comparison_total=comparison_total,
        difference=difference,
        percent_change=percent,
    )


class QueryExecutor:
    def __init__(
        self,
        ledger: LedgerRepository,
        currency: str = "$",
        decimal_separator: str = ".",
    ):
        self.ledger = ledger
        self.currency = currency
        self.decimal_separator = decimal_separator

    def _money(self, amount) -> str:
        return format_money(amount, self.currency, self.decimal_separator)

    # ── Registration ──────────────────────────────────────────────

    def _store(self, item: RegisterOne, user: UserContext, now: datetime) -> Transaction:
        name = item.category.strip() or infer_category(item.description, item.kind)
        when = datetime.combine(item.date, time.min) if item.date else now
        description = item.description.strip() or name
        try:
            category = self.ledger.get_or_create_category(name, item.kind)
            return self.ledger.create_transaction(
                user_id=user.user_id,
                category=category,
                kind=item.kind,
                amount=item.amount,
                description=description,
                date=when,
                source="chat",
            )
        except Exception as e:
            logger.error("Failed to store transaction for user #{}: {}", user.user_id, e)
            raise RegistrationError(str(e)) from e

    def register(
        self, op: RegisterOne | RegisterMany, user: UserContext, now: datetime
    ) -> RegistrationResult:
        if isinstance(op, RegisterOne):
            record = self._store(op, user, now)
            logger.info("Registered {} #{} for user #{}", record.kind, record.id, user.user_id)
            return RegistrationResult(text=self._single_reply(record, now), records=[record])

        # One item at a time, one aggregated reply
        records = [self._store(item, user, now) for item in op.items]
        logger.info("Registered {} transactions for user #{}", len(records), user.user_id)
        return RegistrationResult(text=self._many_reply(records, now), records=records)

    def _single_reply(self, t: Transaction, now: datetime) -> str:
        title = "Income" if t.kind == "income" else "Expense"
        emoji = "💰" if t.kind == "income" else "💸"
        return (
            f"✅ {title} recorded!\n"
            f"{emoji} {self._money(t.amount)} - {t.category}\n"
            f"📝 {t.description}\n"
            f"📅 {format_date_label(t.date, now)}"
        )

    def _many_reply(self, records: list[Transaction], now: datetime) -> str:
        kinds = {t.kind for t in records}
        if kinds == {"income"}:
            noun = "incomes"
        elif kinds == {"expense"}:
            noun = "expenses"
        else:
            noun = "transactions"

        lines = [f"✅ {len(records)} {noun} recorded!", ""]
        for i, t in enumerate(records, 1):
            emoji = "💰" if t.kind == "income" else "💸"
            lines.append(f"{i}. {emoji} {self._money(t.amount)} - {t.category}")
            lines.append(f"   📝 {t.description}")
            lines.append(f"   📅 {format_date_label(t.date, now)}")
            lines.append("")

        total = sum((t.amount for t in records), Decimal("0"))
        lines.append(f"💰 Total: {self._money(total)}")
        return "\n".join(lines)

    # ── Queries ───────────────────────────────────────────────────

    def _resolve(self, source: Query | Comparison, now: datetime) -> DateRange:
        return periods.resolve(
            source.period,
            now,
            explicit_day=source.specific_day,
            explicit_start=source.start_date,
            explicit_end=source.end_date,
        )

    def _snapshot(
        self, query: Query, user: UserContext, date_range: DateRange
    ) -> FinancialSnapshot:
        if query.kind in ("expenses", "income"):
            kind = "expense" if query.kind == "expenses" else "income"
            transactions = self.ledger.get_transactions(
                user.user_id, kind=kind, date_range=date_range, category=query.category
            )
            total = sum((t.amount for t in transactions), Decimal("0"))
            return FinancialSnapshot(
                total=total,
                income_total=total if kind == "income" else None,
                expense_total=total if kind == "expense" else None,
                transactions=transactions,
            )

        if query.kind == "balance" and not query.category:
            balance = self.ledger.get_balance(user.user_id, date_range)
            return FinancialSnapshot(
                total=balance.balance,
                income_total=balance.income,
                expense_total=balance.expense,
            )

        transactions = self.ledger.get_transactions(
            user.user_id, date_range=date_range, category=query.category
        )
        by_category: dict[str, dict[str, Decimal]] = defaultdict(
            lambda: {"income": Decimal("0"), "expense": Decimal("0")}
        )
        for t in transactions:
            by_category[t.category or DEFAULT_CATEGORY][t.kind] += t.amount

        income = sum((v["income"] for v in by_category.values()), Decimal("0"))
        expense = sum((v["expense"] for v in by_category.values()), Decimal("0"))
        return FinancialSnapshot(
            total=income - expense,
            income_total=income,
            expense_total=expense,
            transactions=transactions,
            by_category=dict(by_category),
        )

    @staticmethod
    def _compared_figure(kind: str, snapshot: FinancialSnapshot) -> Decimal:
        if kind == "income":
            return snapshot.income_total or Decimal("0")
        if kind == "balance":
            return snapshot.total or Decimal("0")
        return snapshot.expense_total or Decimal("0")

    def execute(self, query: Query, user: UserContext, now: datetime) -> QueryResult:
        date_range = self._resolve(query, now)
        label = periods.period_label(query.period, now, date_range)
        snapshot = self._snapshot(query, user, date_range)
        logger.info(
            "Query {} / {} for user #{} ({} - {})",
            query.kind, query.period, user.user_id, date_range.start, date_range.end,
        )

        if query.kind in ("expenses", "income"):
            text = self._render_kind(query, label, snapshot, now)
        elif query.kind == "balance":
            text = self._render_balance(query, label, snapshot)
        elif query.kind == "detailed":
            text = self._render_detailed(query, label, snapshot, now)
        else:
            text = self._render_summary(query, label, snapshot)

        if query.comparison is not None:
            text += "\n\n" + self._render_comparison(query, label, snapshot, user, now)

        return QueryResult(text=text, snapshot=snapshot)

    def _heading(self, title: str, query: Query, label: str) -> str:
        if query.category:
            return f"{title} - {label} ({query.category})"
        return f"{title} - {label}"

    def _render_kind(
        self, query: Query, label: str, snapshot: FinancialSnapshot, now: datetime
    ) -> str:
        emoji = "💰" if query.kind == "income" else "💸"
        title = "Income" if query.kind == "income" else "Expenses"
        transactions = snapshot.transactions or []
        lines = [
            f"{emoji} {self._heading(title, query, label)}",
            f"Total: {self._money(snapshot.total)}",
            f"Transactions: {len(transactions)}",
        ]
        if transactions:
            lines.append("")
            lines.append("📋 Latest transactions:")
            for t in transactions[:RECENT_LIMIT]:
                lines.append(
                    f"• {self._money(t.amount)} - {t.description} ({format_date_label(t.date, now)})"
                )
        return "\n".join(lines)

    def _totals_lines(self, snapshot: FinancialSnapshot) -> list[str]:
        balance = snapshot.total or Decimal("0")
        return [
            f"💰 Income: {self._money(snapshot.income_total or 0)}",
            f"💸 Expenses: {self._money(snapshot.expense_total or 0)}",
            f"{'💚' if balance >= 0 else '❤️'} Balance: {self._money(balance)}",
        ]

    def _render_balance(self, query: Query, label: str, snapshot: FinancialSnapshot) -> str:
        return "\n".join([f"📊 {self._heading('Balance', query, label)}", *self._totals_lines(snapshot)])

    def _render_summary(self, query: Query, label: str, snapshot: FinancialSnapshot) -> str:
        lines = [
            f"📊 {self._heading('Financial summary', query, label)}",
            *self._totals_lines(snapshot),
            f"Transactions: {len(snapshot.transactions or [])}",
        ]
        spending = sorted(
            (
                (name, totals["expense"])
                for name, totals in (snapshot.by_category or {}).items()
                if totals["expense"] > 0
            ),
            key=lambda item: item[1],
            reverse=True,
        )
        if spending:
            lines.append("")
            lines.append("🏷️ Expenses by category:")
            for name, amount in spending:
                lines.append(f"• {name}: {self._money(amount)}")
        return "\n".join(lines)

    def _render_detailed(
        self, query: Query, label: str, snapshot: FinancialSnapshot, now: datetime
    ) -> str:
        transactions = snapshot.transactions or []
        lines = [
            f"📋 {self._heading('Detailed report', query, label)}",
            *self._totals_lines(snapshot),
            f"Transactions: {len(transactions)}",
        ]
        if transactions:
            lines.append("")
            for t in transactions[:DETAILED_LIMIT]:
                sign = "+" if t.kind == "income" else "-"
                lines.append(
                    f"{format_date_label(t.date, now)}: {sign}{self._money(t.amount)} "
                    f"- {t.description} [{t.category}]"
                )
            if len(transactions) > DETAILED_LIMIT:
                lines.append(f"... and {len(transactions) - DETAILED_LIMIT} more")
        return "\n".join(lines)

    def _render_comparison(
        self,
        query: Query,
        label: str,
        snapshot: FinancialSnapshot,
        user: UserContext,
        now: datetime,
    ) -> str:
        comparison = query.comparison
        other_range = self._resolve(comparison, now)
        other_label = periods.period_label(comparison.period, now, other_range)
        other_snapshot = self._snapshot(query, user, other_range)

        result = compare_totals(
            self._compared_figure(query.kind, snapshot),
            self._compared_figure(query.kind, other_snapshot),
        )
        percent = Decimal(str(abs(result.percent_change))).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
        percent_text = str(percent).replace(".", self.decimal_separator)

        lines = [
            f"📈 Comparison: {label} vs {other_label}",
            f"{label}: {self._money(result.main_total)}",
            f"{other_label}: {self._money(result.comparison_total)}",
        ]
        if result.difference > 0:
            lines.append(
                f"⬆️ {label} was higher by {self._money(result.difference)} ({percent_text}%)"
            )
        elif result.difference < 0:
            lines.append(
                f"⬇️ {label} was lower by {self._money(-result.difference)} ({percent_text}%)"
            )
        else:
            lines.append("➡️ Both periods are the same")
        return "\n".join(lines)
