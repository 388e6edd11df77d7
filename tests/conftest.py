"""Shared fixtures.

Every test gets its own TinyDB file under ``tmp_path``. ``DB_PATH`` is pointed
at a temp file before anything imports ``pocketledger.deps`` so the API tests
never touch a real database in the working tree.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime
from pathlib import Path

os.environ["DB_PATH"] = os.path.join(tempfile.mkdtemp(prefix="pocketledger-"), "api.json")
os.environ["LLM_API_KEY"] = ""
os.environ["TRANSCRIPTION_API_KEY"] = ""
os.environ["TELEGRAM_BOT_TOKEN"] = ""

import pytest

from pocketledger.bot.phone import PhoneDirectory
from pocketledger.bot.transport import RecordingTransport
from pocketledger.conversation.context import ContextBuilder, ConversationMemory
from pocketledger.db.repository import (
    ConversationRepository,
    LedgerRepository,
    UserRepository,
    open_db,
)
from pocketledger.ledger.executor import QueryExecutor
from pocketledger.models.schemas import User, UserContext

NOW = datetime(2025, 7, 15, 10, 0)
PHONE = "5511987654321"


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def db(tmp_path: Path):
    database = open_db(os.fspath(tmp_path / "ledger.json"))
    yield database
    database.close()


@pytest.fixture
def users(db) -> UserRepository:
    return UserRepository(db)


@pytest.fixture
def ledger(db) -> LedgerRepository:
    return LedgerRepository(db)


@pytest.fixture
def conversations(db) -> ConversationRepository:
    return ConversationRepository(db)


@pytest.fixture
def user(users) -> UserContext:
    stored = users.add(User(display_name="Ana", phone=PHONE))
    return UserContext(user_id=stored.id, phone=stored.phone, display_name=stored.display_name)


@pytest.fixture
def executor(ledger) -> QueryExecutor:
    return QueryExecutor(ledger, currency="$", decimal_separator=".")


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def directory(users) -> PhoneDirectory:
    return PhoneDirectory(users, country_code="55")


@pytest.fixture
def context_builder(conversations) -> ContextBuilder:
    return ContextBuilder(conversations, window=5)


@pytest.fixture
def memory(conversations) -> ConversationMemory:
    return ConversationMemory(conversations, summarizer=None, window=5, retention=10)
