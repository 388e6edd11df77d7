import asyncio
from datetime import datetime

from loguru import logger

from pocketledger.bot.phone import PhoneDirectory
from pocketledger.bot.transport import Transport
from pocketledger.conversation.context import ContextBuilder, ConversationMemory
from pocketledger.ledger.executor import QueryExecutor
from pocketledger.llm import fallback
from pocketledger.llm.parser import IntentResolver
from pocketledger.llm.transcriber import Transcriber
from pocketledger.models.schemas import (
    FreeTextReply,
    InboundMessage,
    Query,
    RegisterMany,
    RegisterOne,
    UserContext,
)

UNKNOWN_USER_MESSAGE = (
    "👋 Hi! This number isn't registered yet.\n\n"
    "To use the bot:\n"
    "1. Sign in to your Pocket Ledger account\n"
    "2. Add this phone number to your profile\n"
    "3. Come back and send a message\n\n"
    "If you need help, please contact support."
)
INACTIVE_USER_MESSAGE = (
    "🔒 Your account is inactive, so I can't record or look up anything right now. "
    "Please reactivate it to keep using the bot."
)
AUDIO_NOT_UNDERSTOOD = (
    "😔 Sorry, I couldn't understand the audio. Could you try again or send a text message?"
)
UNSUPPORTED_MESSAGE = "📱 I can help with text or voice messages about your finances."
GENERIC_ERROR = "😔 Something went wrong. Please try again in a moment."
HELP_MESSAGE = (
    "🤖 I didn't catch a transaction or a question there.\n\n"
    "Try something like:\n"
    '• "spent 50 on lunch"\n'
    '• "received 3000 from salary"\n'
    '• "how much did I spend this month?"\n'
    '• "what\'s my balance?"'
)


def _message_type(outcome) -> str:
    if isinstance(outcome, (RegisterOne, RegisterMany)):
        return "transaction"
    if isinstance(outcome, Query):
        return "query"
    return "chat"


class MessageOrchestrator:
    """Takes one inbound message from authentication to the final reply."""

    def __init__(
        self,
        directory: PhoneDirectory,
        executor: QueryExecutor,
        transport: Transport,
        context_builder: ContextBuilder,
        memory: ConversationMemory,
        resolver: IntentResolver | None = None,
        transcriber: Transcriber | None = None,
    ):
        self.directory = directory
        self.executor = executor
        self.transport = transport
        self.context_builder = context_builder
        self.memory = memory
        self.resolver = resolver
        self.transcriber = transcriber

    async def handle(self, message: InboundMessage, now: datetime | None = None) -> str:
        now = now or datetime.now()

        try:
            auth = self.directory.authenticate(message.phone)
        except Exception as e:
            logger.error("User lookup failed for {}: {}", message.phone, e)
            return await self._reply(message, GENERIC_ERROR)

        if auth.status == "unknown":
            logger.info("Rejected message from unknown number {}", message.phone)
            return await self._reply(message, UNKNOWN_USER_MESSAGE)
        if auth.status == "inactive":
            logger.info("Rejected message from inactive account {}", message.phone)
            return await self._reply(message, INACTIVE_USER_MESSAGE)

        user = auth.user
        try:
            await self.transport.send_typing_indicator(message.address)

            if message.kind == "audio":
                utterance = await self._transcribe(message)
                if not utterance:
                    return await self._reply(message, AUDIO_NOT_UNDERSTOOD)
            elif message.kind == "text" and (message.text or "").strip():
                utterance = message.text.strip()
            else:
                return await self._reply(message, UNSUPPORTED_MESSAGE)

            outcome = await self._resolve(utterance, user, now)
            reply = self._execute(outcome, user, now)
            if message.kind == "audio":
                reply = f'🎙️ I heard: "{utterance}"\n\n{reply}'
        except Exception as e:
            logger.exception("Failed to process message from user #{}: {}", user.user_id, e)
            return await self._reply(message, GENERIC_ERROR)

        await self._reply(message, reply)
        await self.memory.record(user, utterance, reply, _message_type(outcome))
        return reply

    async def _reply(self, message: InboundMessage, text: str) -> str:
        if not await self.transport.send(message.address, text):
            logger.warning("Reply to {} was not delivered", message.address)
        return text

    async def _transcribe(self, message: InboundMessage) -> str | None:
        if self.transcriber is None:
            logger.warning("Received audio but no transcriber is configured")
            return None
        text = await asyncio.to_thread(self.transcriber.transcribe, message.audio or b"")
        return (text or "").strip() or None

    async def _resolve(self, utterance: str, user: UserContext, now: datetime):
        if self.resolver is not None:
            context = self.context_builder.build(user.user_id)
            return await asyncio.to_thread(self.resolver.resolve, utterance, context, user, now)

        op = fallback.try_parse_transaction(utterance, now) or fallback.try_parse_query(utterance)
        return op if op is not None else FreeTextReply(text=HELP_MESSAGE)

    def _execute(self, outcome, user: UserContext, now: datetime) -> str:
        if isinstance(outcome, (RegisterOne, RegisterMany)):
            return self.executor.register(outcome, user, now).text
        if isinstance(outcome, Query):
            return self.executor.execute(outcome, user, now).text
        return outcome.text
