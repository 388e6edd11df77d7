from loguru import logger

from pocketledger.bot.orchestrator import MessageOrchestrator
from pocketledger.bot.phone import PhoneDirectory
from pocketledger.bot.transport import Transport
from pocketledger.config import get_settings
from pocketledger.conversation.context import ContextBuilder, ConversationMemory
from pocketledger.db.repository import (
    ConversationRepository,
    LedgerRepository,
    UserRepository,
    open_db,
)
from pocketledger.ledger.executor import QueryExecutor
from pocketledger.llm.parser import IntentResolver
from pocketledger.llm.transcriber import Transcriber

settings = get_settings()

db = open_db(settings.db_path)
users = UserRepository(db)
ledger = LedgerRepository(db)
conversations = ConversationRepository(db)

resolver = None
if settings.llm_api_key:
    resolver = IntentResolver(
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
    )
else:
    logger.warning("LLM_API_KEY not set, using the rule-based parser")

transcriber = None
if settings.transcription_api_key:
    transcriber = Transcriber(
        api_key=settings.transcription_api_key,
        model=settings.transcription_model,
        base_url=settings.transcription_base_url,
    )
else:
    logger.warning("TRANSCRIPTION_API_KEY not set, voice messages can't be transcribed")

directory = PhoneDirectory(users, settings.default_country_code)
executor = QueryExecutor(ledger, settings.currency_symbol, settings.decimal_separator)
context_builder = ContextBuilder(conversations, window=settings.history_window)
memory = ConversationMemory(
    conversations,
    summarizer=resolver.summarize if resolver else None,
    window=settings.history_window,
    retention=settings.history_retention,
)


def build_orchestrator(transport: Transport) -> MessageOrchestrator:
    return MessageOrchestrator(
        directory=directory,
        executor=executor,
        transport=transport,
        context_builder=context_builder,
        memory=memory,
        resolver=resolver,
        transcriber=transcriber,
    )
