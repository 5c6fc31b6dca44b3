"""High-level orchestration map for the voice reply pipeline.

``app.pipelines.voice.orchestrator.PipelineOrchestrator`` runs these stages
in order for every voice note. Stages 02 to 05 share one job slot (the fixed
S3 key and Transcribe job name) and therefore run under a single lock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .types import Stage


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the voice pipeline."""

    order: int
    stage: Stage
    module: str
    summary: str
    exclusive: bool = False
    retryable: bool = False


class VoiceReplyPipeline:
    """Utility wrapper for documenting the voice reply flow."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            Stage.INGESTION,
            "app.pipelines.voice.ingestion",
            "Stream the voice note from the messaging channel into memory.",
            retryable=True,
        ),
        PipelineStage(
            2,
            Stage.UPLOAD,
            "app.services.storage",
            "Overwrite the fixed S3 key with the new voice note.",
            exclusive=True,
            retryable=True,
        ),
        PipelineStage(
            3,
            Stage.SUBMIT,
            "app.services.transcribe",
            "Delete the previous Transcribe job and start a new one under the fixed name.",
            exclusive=True,
            retryable=True,
        ),
        PipelineStage(
            4,
            Stage.POLL,
            "app.pipelines.voice.polling",
            "Re-read the job status on a fixed interval until COMPLETED or FAILED.",
            exclusive=True,
        ),
        PipelineStage(
            5,
            Stage.FETCH,
            "app.pipelines.voice.results",
            "Download the transcript JSON and keep the first candidate.",
            exclusive=True,
            retryable=True,
        ),
        PipelineStage(
            6,
            Stage.COMPLETION,
            "app.services.llm_client",
            "Send the transcript to the completion model once.",
        ),
        PipelineStage(
            7,
            Stage.DELIVERY,
            "app.services.telegram",
            "Reply to the conversation with the generated text.",
        ),
        PipelineStage(
            8,
            Stage.SPEECH,
            "app.services.speech",
            "Optionally synthesise the reply with Polly and send it as audio.",
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)


__all__ = ["PipelineStage", "VoiceReplyPipeline"]
