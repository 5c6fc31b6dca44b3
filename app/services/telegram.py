"""Telegram delivery adapter for pipeline replies."""

from __future__ import annotations

import io
import logging

from telegram import Bot
from telegram.error import TelegramError

from app.services.errors import DeliveryError

logger = logging.getLogger(__name__)


class TelegramReplySink:
    """Send replies back to a Telegram chat."""

    def __init__(self, bot: Bot) -> None:
        self._bot = bot

    async def send_text(self, conversation_id: str, text: str) -> None:
        try:
            await self._bot.send_message(chat_id=conversation_id, text=text)
        except TelegramError as exc:
            raise DeliveryError(f"Failed to send message to chat {conversation_id}: {exc}") from exc
        logger.debug("Sent %s chars to chat %s", len(text), conversation_id)

    async def send_audio(self, conversation_id: str, audio_bytes: bytes, *, media_type: str) -> None:
        extension = "ogg" if media_type == "audio/ogg" else "mp3"
        try:
            await self._bot.send_audio(
                chat_id=conversation_id,
                audio=io.BytesIO(audio_bytes),
                filename=f"reply.{extension}",
            )
        except TelegramError as exc:
            raise DeliveryError(f"Failed to send audio to chat {conversation_id}: {exc}") from exc


__all__ = ["TelegramReplySink"]
