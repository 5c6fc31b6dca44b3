"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, status
from telegram import Bot

from app.config.settings import settings
from app.pipelines.voice import PipelineOrchestrator, ReplySink, build_orchestrator
from app.services.telegram import TelegramReplySink


@lru_cache(maxsize=1)
def get_orchestrator() -> PipelineOrchestrator:
    """Return the process-wide orchestrator so every run shares one slot lock."""

    return build_orchestrator()


def get_reply_sink() -> ReplySink:
    """Resolve the outbound Telegram channel used by HTTP-triggered runs."""

    token = settings.telegram.bot_token
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Telegram bot token is not configured",
        )
    return TelegramReplySink(Bot(token.get_secret_value()))


OrchestratorDep = Annotated[PipelineOrchestrator, Depends(get_orchestrator)]
ReplySinkDep = Annotated[ReplySink, Depends(get_reply_sink)]


__all__ = ["get_orchestrator", "get_reply_sink", "OrchestratorDep", "ReplySinkDep"]
