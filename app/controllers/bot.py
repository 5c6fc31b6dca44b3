"""Telegram bot handlers feeding voice notes into the pipeline."""

from __future__ import annotations

import logging

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from app.config.settings import settings
from app.domain.models import AudioSource
from app.pipelines.voice import PipelineOrchestrator
from app.services.errors import DeliveryError
from app.services.telegram import TelegramReplySink

logger = logging.getLogger(__name__)

START_REPLY = "Bot started!"


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if update.effective_message is not None:
        await update.effective_message.reply_text(START_REPLY)


def make_voice_handler(orchestrator: PipelineOrchestrator):
    """Build the voice handler bound to ``orchestrator``."""

    async def handle_voice(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None or message.voice is None or update.effective_chat is None:
            logger.info("Ignoring update without a voice note")
            return

        conversation_id = str(update.effective_chat.id)
        sink = TelegramReplySink(context.bot)
        try:
            voice_file = await context.bot.get_file(message.voice.file_id)
        except TelegramError:
            logger.exception("Could not resolve voice file %s", message.voice.file_id)
            await _notify_failure(sink, conversation_id)
            return

        audio = AudioSource(uri=voice_file.file_path, conversation_id=conversation_id)
        await orchestrator.handle(audio, sink)

    return handle_voice


async def _notify_failure(sink: TelegramReplySink, conversation_id: str) -> None:
    if not settings.pipeline.notify_on_failure:
        return
    try:
        await sink.send_text(conversation_id, settings.pipeline.failure_message)
    except DeliveryError as exc:
        logger.warning("Could not send failure notice to chat %s: %s", conversation_id, exc)


async def reject_non_voice(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.info("Invalid audio message from chat=%s", update.effective_chat.id if update.effective_chat else None)


def build_application(token: str, orchestrator: PipelineOrchestrator) -> Application:
    """Create the Telegram application with concurrent update handling.

    Updates are processed concurrently so new voice notes are accepted while
    an earlier run waits on the transcription slot.
    """

    application = Application.builder().token(token).concurrent_updates(True).build()
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(MessageHandler(filters.VOICE, make_voice_handler(orchestrator)))
    application.add_handler(MessageHandler(~filters.VOICE & ~filters.COMMAND, reject_non_voice))
    return application


__all__ = ["build_application", "make_voice_handler", "reject_non_voice", "start_command"]
