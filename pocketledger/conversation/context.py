"""Bounded conversation memory: context for the model and rolling summaries.

The history store is optional. When it is missing, or any call to it fails,
the bot carries on without history instead of failing the message.
"""

import asyncio
from collections.abc import Callable

from loguru import logger

from pocketledger.db.repository import ConversationRepository
from pocketledger.models.schemas import ConversationTurn, UserContext

SUMMARY_PREFIX = "[Summary of earlier conversations]:"

Summarizer = Callable[[str, str | None], str]


class ContextBuilder:
    def __init__(self, history: ConversationRepository | None, window: int = 5):
        self.history = history
        self.window = window

    def build(self, user_id: int) -> list[dict]:
        """Summary first, then the last ``window`` turns oldest-first."""
        if self.history is None:
            return []

        messages: list[dict] = []
        try:
            summary = self.history.get_summary(user_id)
            if summary and summary.summary:
                messages.append(
                    {"role": "assistant", "content": f"{SUMMARY_PREFIX} {summary.summary}"}
                )

            recent = self.history.get_recent(user_id, self.window)
            for turn in reversed(recent):
                messages.append({"role": "user", "content": turn.user_message})
                messages.append({"role": "assistant", "content": turn.bot_response})
        except Exception as e:
            logger.warning("Could not load conversation history for user #{}: {}", user_id, e)
            return []

        return messages


def _transcript(turns: list[ConversationTurn]) -> str:
    return "\n\n".join(f"User: {t.user_message}\nBot: {t.bot_response}" for t in turns)


class ConversationMemory:
    """Persists exchanges and folds old ones into a rolling summary."""

    def __init__(
        self,
        history: ConversationRepository | None,
        summarizer: Summarizer | None = None,
        window: int = 5,
        retention: int = 10,
    ):
        self.history = history
        self.summarizer = summarizer
        self.window = window
        self.retention = retention

    async def record(
        self, user: UserContext, user_message: str, bot_response: str, message_type: str
    ) -> None:
        if self.history is None:
            return
        try:
            self.history.save(
                user.user_id, user.phone, user_message, bot_response, message_type
            )
            if self.history.count(user.user_id) > self.retention:
                await self.compact(user.user_id)
        except Exception as e:
            logger.error("Failed to save conversation for user #{}: {}", user.user_id, e)

    async def compact(self, user_id: int) -> None:
        total = self.history.count(user_id)
        older = list(reversed(self.history.get_recent(user_id, total)[self.window:]))
        if not older:
            return

        if self.summarizer is not None:
            previous = self.history.get_summary(user_id)
            try:
                text = await asyncio.to_thread(
                    self.summarizer,
                    _transcript(older),
                    previous.summary if previous else None,
                )
            except Exception as e:
                logger.error("Failed to summarize conversation for user #{}: {}", user_id, e)
                return
            covered = len(older) + (previous.message_count if previous else 0)
            self.history.update_summary(user_id, text, covered)

        removed = self.history.delete_older_than(user_id, self.window)
        logger.info("Compacted {} old turns for user #{}", removed, user_id)
