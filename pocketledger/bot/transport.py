from typing import Protocol

from loguru import logger
from telegram import Bot
from telegram.constants import ChatAction
from telegram.error import TelegramError


class Transport(Protocol):
    async def send(self, address: str, text: str) -> bool: ...

    async def send_typing_indicator(self, address: str) -> None: ...


class TelegramTransport:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def send(self, address: str, text: str) -> bool:
        try:
            await self.bot.send_message(chat_id=address, text=text)
        except TelegramError as e:
            logger.error("Failed to send message to {}: {}", address, e)
            return False
        return True

    async def send_typing_indicator(self, address: str) -> None:
        try:
            await self.bot.send_chat_action(chat_id=address, action=ChatAction.TYPING)
        except TelegramError as e:
            logger.warning("Failed to send typing indicator to {}: {}", address, e)


class RecordingTransport:
    """Keeps outgoing messages in memory; used by the HTTP API."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.typing: list[str] = []

    async def send(self, address: str, text: str) -> bool:
        logger.info("Reply to {}: {}", address, text)
        self.sent.append((address, text))
        return True

    async def send_typing_indicator(self, address: str) -> None:
        self.typing.append(address)
