from loguru import logger
from telegram import KeyboardButton, ReplyKeyboardMarkup, ReplyKeyboardRemove, Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from pocketledger.bot.orchestrator import MessageOrchestrator
from pocketledger.bot.transport import TelegramTransport
from pocketledger.config import get_settings
from pocketledger.deps import build_orchestrator
from pocketledger.models.schemas import InboundMessage

settings = get_settings()

WELCOME_MESSAGE = (
    "🎉 Welcome to Pocket Ledger!\n\n"
    "Record your income and expenses just by chatting with me.\n\n"
    "💬 How to use:\n"
    "• Send a text or a voice note\n"
    '• "Spent 50 on lunch"\n'
    '• "Received 3000 from salary"\n'
    '• "Spent 500 on tires and 200 on bodywork"\n\n'
    "📊 Questions:\n"
    '• "How much did I spend this month?"\n'
    '• "What\'s my balance?"\n'
    '• "Did I spend more this week than last week?"\n\n'
    "🤖 I only answer questions about your finances."
)
SHARE_CONTACT_MESSAGE = "📱 Please share your phone number so I can find your account."


def _orchestrator(context: ContextTypes.DEFAULT_TYPE) -> MessageOrchestrator:
    return context.application.bot_data["orchestrator"]


def _contact_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        [[KeyboardButton("Share my phone number", request_contact=True)]],
        one_time_keyboard=True,
        resize_keyboard=True,
    )


async def _ask_for_contact(update: Update) -> None:
    await update.message.reply_text(SHARE_CONTACT_MESSAGE, reply_markup=_contact_keyboard())


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /start command."""
    await update.message.reply_text(WELCOME_MESSAGE)
    if "phone" not in context.user_data:
        await _ask_for_contact(update)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle /help command."""
    await update.message.reply_text(WELCOME_MESSAGE)


async def handle_contact(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Remember the phone number the user shared; it identifies their account."""
    contact = update.message.contact
    if contact.user_id and contact.user_id != update.effective_user.id:
        await update.message.reply_text("Please share your own phone number.")
        return

    context.user_data["phone"] = contact.phone_number
    logger.info("Telegram user {} shared phone {}", update.effective_user.id, contact.phone_number)
    await update.message.reply_text(
        "✅ Thanks! You can start sending your expenses and questions.",
        reply_markup=ReplyKeyboardRemove(),
    )


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle incoming text messages, the main conversation entry point."""
    phone = context.user_data.get("phone")
    if not phone:
        await _ask_for_contact(update)
        return

    user_text = update.message.text.strip()
    logger.info("Telegram message: {}", user_text)
    await _orchestrator(context).handle(
        InboundMessage(
            phone=phone,
            address=str(update.effective_chat.id),
            kind="text",
            text=user_text,
        )
    )


async def handle_voice(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Handle voice notes: download them and let the orchestrator transcribe."""
    phone = context.user_data.get("phone")
    if not phone:
        await _ask_for_contact(update)
        return

    voice = update.message.voice or update.message.audio
    telegram_file = await voice.get_file()
    audio = bytes(await telegram_file.download_as_bytearray())
    logger.info("Telegram voice note: {} bytes", len(audio))

    await _orchestrator(context).handle(
        InboundMessage(
            phone=phone,
            address=str(update.effective_chat.id),
            kind="audio",
            audio=audio,
        )
    )


async def handle_other(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Photos, documents and the like go through the orchestrator as 'other'."""
    phone = context.user_data.get("phone")
    if not phone:
        await _ask_for_contact(update)
        return
    await _orchestrator(context).handle(
        InboundMessage(phone=phone, address=str(update.effective_chat.id), kind="other")
    )


def build_bot_app() -> Application:
    """Build and return the Telegram bot application."""
    app = Application.builder().token(settings.telegram_bot_token).build()
    app.bot_data["orchestrator"] = build_orchestrator(TelegramTransport(app.bot))

    # Command handlers
    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))

    # Message handlers
    app.add_handler(MessageHandler(filters.CONTACT, handle_contact))
    app.add_handler(MessageHandler(filters.VOICE | filters.AUDIO, handle_voice))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    app.add_handler(
        MessageHandler(filters.PHOTO | filters.Document.ALL | filters.VIDEO, handle_other)
    )

    return app
