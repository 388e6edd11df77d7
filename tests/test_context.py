import asyncio
from datetime import datetime, timedelta

from pocketledger.conversation.context import (
    SUMMARY_PREFIX,
    ContextBuilder,
    ConversationMemory,
)
from pocketledger.models.schemas import ConversationTurn


def _seed(conversations, user, count: int) -> None:
    start = datetime(2025, 7, 1, 9, 0)
    for i in range(count):
        turn = ConversationTurn(
            user_id=user.user_id,
            user_message=f"message {i}",
            bot_response=f"reply {i}",
            created_at=start + timedelta(minutes=i),
        )
        data = turn.model_dump(mode="json")
        data.pop("id")
        conversations.history.insert(data)


def test_no_store_means_no_context(user):
    assert ContextBuilder(None).build(user.user_id) == []


def test_empty_history(context_builder, user):
    assert context_builder.build(user.user_id) == []


def test_recent_turns_oldest_first_and_bounded(context_builder, conversations, user):
    _seed(conversations, user, 8)
    conversations.update_summary(user.user_id, "Spends a lot on coffee.", 20)

    messages = context_builder.build(user.user_id)

    assert len(messages) == 1 + 2 * 5
    assert messages[0] == {
        "role": "assistant",
        "content": f"{SUMMARY_PREFIX} Spends a lot on coffee.",
    }
    assert messages[1] == {"role": "user", "content": "message 3"}
    assert messages[2] == {"role": "assistant", "content": "reply 3"}
    assert messages[-1] == {"role": "assistant", "content": "reply 7"}


def test_store_failure_yields_empty_context(context_builder, user, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("table conversation_summary does not exist")

    monkeypatch.setattr(context_builder.history, "get_summary", boom)
    assert context_builder.build(user.user_id) == []


def test_record_saves_turn(memory, conversations, user):
    asyncio.run(memory.record(user, "spent 10 on coffee", "✅ Expense recorded!", "transaction"))
    turns = conversations.get_recent(user.user_id, 5)
    assert len(turns) == 1
    assert turns[0].message_type == "transaction"
    assert turns[0].phone == user.phone


def test_record_without_store_is_a_no_op(user):
    asyncio.run(ConversationMemory(None).record(user, "hi", "hello", "chat"))


def test_record_swallows_store_failures(memory, user, monkeypatch):
    def boom(*args, **kwargs):
        raise OSError("read-only file system")

    monkeypatch.setattr(memory.history, "save", boom)
    asyncio.run(memory.record(user, "hi", "hello", "chat"))


def test_compaction_summarizes_and_keeps_last_five(conversations, user):
    seen = {}

    def summarizer(transcript, previous):
        seen["transcript"] = transcript
        seen["previous"] = previous
        return "User logs coffee every morning."

    memory = ConversationMemory(conversations, summarizer=summarizer, window=5, retention=10)
    _seed(conversations, user, 10)
    asyncio.run(memory.record(user, "message 10", "reply 10", "chat"))

    remaining = conversations.get_recent(user.user_id, 100)
    assert [t.user_message for t in remaining] == [f"message {i}" for i in range(10, 5, -1)]

    summary = conversations.get_summary(user.user_id)
    assert summary.summary == "User logs coffee every morning."
    assert summary.message_count == 6
    assert seen["previous"] is None
    assert seen["transcript"].startswith("User: message 0\nBot: reply 0")


def test_no_compaction_at_threshold(conversations, user):
    calls = []
    memory = ConversationMemory(
        conversations, summarizer=lambda t, p: calls.append(t) or "x", window=5, retention=10
    )
    _seed(conversations, user, 9)
    asyncio.run(memory.record(user, "message 9", "reply 9", "chat"))

    assert calls == []
    assert conversations.count(user.user_id) == 10


def test_failed_summary_keeps_raw_turns(conversations, user):
    def summarizer(transcript, previous):
        raise RuntimeError("model unavailable")

    memory = ConversationMemory(conversations, summarizer=summarizer, window=5, retention=10)
    _seed(conversations, user, 11)
    asyncio.run(memory.compact(user.user_id))

    assert conversations.count(user.user_id) == 11
    assert conversations.get_summary(user.user_id) is None


def test_compaction_without_model_only_trims(memory, conversations, user):
    _seed(conversations, user, 12)
    asyncio.run(memory.compact(user.user_id))
    assert conversations.count(user.user_id) == 5
    assert conversations.get_summary(user.user_id) is None
