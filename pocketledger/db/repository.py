import re
from datetime import datetime
from decimal import Decimal

from tinydb import Query, TinyDB

from pocketledger.models.schemas import (
    Balance,
    Category,
    ConversationSummary,
    ConversationTurn,
    DateRange,
    Transaction,
    User,
)


MIN_SUBSTRING_DIGITS = 8


def open_db(db_path: str = "pocket_ledger.json") -> TinyDB:
    return TinyDB(db_path)


class UserRepository:
    def __init__(self, db: TinyDB):
        self.table = db.table("users")

    def add(self, user: User) -> User:
        data = user.model_dump(mode="json")
        data.pop("id", None)
        user.id = self.table.insert(data)
        return user

    def get(self, id: int) -> User | None:
        doc = self.table.get(doc_id=id)
        if doc is None:
            return None
        return User(id=doc.doc_id, **doc)

    def find_by_phone(self, phone: str) -> User | None:
        U = Query()
        docs = self.table.search(U.phone == phone)
        return User(id=docs[0].doc_id, **docs[0]) if docs else None

    def find_by_phone_substring(self, pattern: str) -> User | None:
        """Match on the stored number's digits; short or ambiguous patterns match nothing."""
        pattern = re.sub(r"\D", "", pattern or "")
        if len(pattern) < MIN_SUBSTRING_DIGITS:
            return None
        U = Query()
        docs = self.table.search(
            U.phone.test(lambda val: pattern in re.sub(r"\D", "", val or ""))
        )
        if len(docs) != 1:
            return None
        return User(id=docs[0].doc_id, **docs[0])


class LedgerRepository:
    def __init__(self, db: TinyDB):
        self.categories = db.table("categories")
        self.transactions = db.table("transactions")

    # Categories are a shared taxonomy: lookups ignore the user.
    def get_category_by_name(self, name: str) -> Category | None:
        C = Query()
        docs = self.categories.search(
            C.name.test(lambda val: val.lower() == name.strip().lower())
        )
        return Category(id=docs[0].doc_id, **docs[0]) if docs else None

    def get_or_create_category(self, name: str, kind: str) -> Category:
        existing = self.get_category_by_name(name)
        if existing is not None:
            return existing
        category = Category(name=name.strip(), kind=kind)
        data = category.model_dump(mode="json")
        data.pop("id", None)
        category.id = self.categories.insert(data)
        return category

    def create_transaction(
        self,
        user_id: int,
        category: Category,
        kind: str,
        amount: Decimal,
        description: str,
        date: datetime,
        source: str = "chat",
    ) -> Transaction:
        transaction = Transaction(
            user_id=user_id,
            category_id=category.id,
            category=category.name,
            kind=kind,
            amount=amount,
            description=description,
            date=date,
            source=source,
        )
        data = transaction.model_dump(mode="json")
        data.pop("id", None)
        transaction.id = self.transactions.insert(data)
        return transaction

    def get_transactions(
        self,
        user_id: int,
        kind: str | None = None,
        date_range: DateRange | None = None,
        category: str | None = None,
    ) -> list[Transaction]:
        T = Query()
        cond = T.user_id == user_id
        if kind:
            cond &= T.kind == kind
        if category:
            cond &= T.category.test(lambda val: val.lower() == category.strip().lower())

        transactions = [
            Transaction(id=doc.doc_id, **doc) for doc in self.transactions.search(cond)
        ]
        if date_range is not None:
            transactions = [t for t in transactions if date_range.contains(t.date)]
        transactions.sort(key=lambda t: (t.date, t.id or 0), reverse=True)
        return transactions

    def get_balance(self, user_id: int, date_range: DateRange | None = None) -> Balance:
        income = Decimal("0")
        expense = Decimal("0")
        for t in self.get_transactions(user_id, date_range=date_range):
            if t.kind == "income":
                income += t.amount
            else:
                expense += t.amount
        return Balance(income=income, expense=expense, balance=income - expense)


class ConversationRepository:
    def __init__(self, db: TinyDB):
        self.history = db.table("conversation_history")
        self.summaries = db.table("conversation_summary")

    def save(
        self,
        user_id: int,
        phone: str,
        user_message: str,
        bot_response: str,
        message_type: str = "chat",
    ) -> ConversationTurn:
        turn = ConversationTurn(
            user_id=user_id,
            phone=phone,
            user_message=user_message,
            bot_response=bot_response,
            message_type=message_type,
        )
        data = turn.model_dump(mode="json")
        data.pop("id", None)
        turn.id = self.history.insert(data)
        return turn

    def _all_newest_first(self, user_id: int) -> list[ConversationTurn]:
        H = Query()
        turns = [
            ConversationTurn(id=doc.doc_id, **doc)
            for doc in self.history.search(H.user_id == user_id)
        ]
        turns.sort(key=lambda t: (t.created_at, t.id or 0), reverse=True)
        return turns

    def get_recent(self, user_id: int, limit: int = 5) -> list[ConversationTurn]:
        """Most recent turns, newest first."""
        return self._all_newest_first(user_id)[:limit]

    def count(self, user_id: int) -> int:
        H = Query()
        return self.history.count(H.user_id == user_id)

    def delete_older_than(self, user_id: int, keep_count: int) -> int:
        stale = self._all_newest_first(user_id)[keep_count:]
        if stale:
            self.history.remove(doc_ids=[t.id for t in stale])
        return len(stale)

    def get_summary(self, user_id: int) -> ConversationSummary | None:
        S = Query()
        docs = self.summaries.search(S.user_id == user_id)
        return ConversationSummary(**docs[0]) if docs else None

    def update_summary(self, user_id: int, text: str, covered_count: int) -> ConversationSummary:
        summary = ConversationSummary(
            user_id=user_id, summary=text, message_count=covered_count
        )
        S = Query()
        self.summaries.upsert(summary.model_dump(mode="json"), S.user_id == user_id)
        return summary
