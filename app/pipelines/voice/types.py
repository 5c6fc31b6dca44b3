"""Typed containers shared across the voice pipeline.

These live in their own module so ``flow``, ``orchestrator`` and the HTTP
controllers can import them without circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol


class Stage(str, Enum):
    INGESTION = "ingestion"
    UPLOAD = "upload"
    SUBMIT = "submit"
    POLL = "poll"
    FETCH = "fetch"
    COMPLETION = "completion"
    DELIVERY = "delivery"
    SPEECH = "speech"


class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ReplySink(Protocol):
    """Outbound channel a run answers through."""

    async def send_text(self, conversation_id: str, text: str) -> None:
        ...

    async def send_audio(self, conversation_id: str, audio_bytes: bytes, *, media_type: str) -> None:
        ...


@dataclass(frozen=True)
class PipelineRunResult:
    """Outcome of one orchestrated run."""

    run_id: str
    conversation_id: str
    status: RunStatus
    stage: Stage
    transcript: Optional[str] = None
    reply: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    speech_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.SUCCEEDED
