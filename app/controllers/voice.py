"""Voice pipeline endpoints.

For a stage-by-stage map see `app.pipelines.voice.flow.VoiceReplyPipeline`.
`POST /voice/runs` feeds an audio URI into the same orchestrator the Telegram
bot uses, so HTTP-triggered and chat-triggered runs share the job slot.
"""

import logging
from typing import List, Union

from fastapi import APIRouter, BackgroundTasks, HTTPException, status
from fastapi.responses import JSONResponse

from app.controllers.dependencies import OrchestratorDep, ReplySinkDep
from app.domain.models import AudioSource
from app.pipelines.voice import PipelineRunResult, VoiceReplyPipeline
from app.services.errors import RegistryError
from app.views import (
    ErrorResponse,
    SlotJob,
    SlotStatus,
    StageDescription,
    VoiceRunAccepted,
    VoiceRunRequest,
    VoiceRunResult,
)

router = APIRouter(prefix="/voice", tags=["voice"])

logger = logging.getLogger(__name__)


def _to_view(result: PipelineRunResult) -> VoiceRunResult:
    return VoiceRunResult(
        run_id=result.run_id,
        conversation_id=result.conversation_id,
        status=result.status.value,
        stage=result.stage.value,
        transcript=result.transcript,
        reply=result.reply,
        error=result.error,
        error_type=result.error_type,
        speech_error=result.speech_error,
    )


@router.post(
    "/runs",
    response_model=Union[VoiceRunResult, VoiceRunAccepted],
    responses={503: {"model": ErrorResponse}},
)
async def start_run(
    payload: VoiceRunRequest,
    orchestrator: OrchestratorDep,
    sink: ReplySinkDep,
    background_tasks: BackgroundTasks,
):
    """Process a voice note; answer immediately unless ``wait`` is set."""

    audio = AudioSource(uri=payload.audio_uri, conversation_id=payload.conversation_id)
    if payload.wait:
        result = await orchestrator.handle(audio, sink)
        return _to_view(result)

    background_tasks.add_task(orchestrator.handle, audio, sink)
    logger.info("Queued voice run conversation=%s", payload.conversation_id)
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content=VoiceRunAccepted(conversation_id=payload.conversation_id).model_dump(),
    )


@router.get("/stages", response_model=List[StageDescription])
async def list_stages() -> List[StageDescription]:
    return [
        StageDescription(
            order=item.order,
            stage=item.stage.value,
            module=item.module,
            summary=item.summary,
            exclusive=item.exclusive,
            retryable=item.retryable,
        )
        for item in VoiceReplyPipeline.describe()
    ]


@router.get("/slot", response_model=SlotStatus, responses={502: {"model": ErrorResponse}})
async def slot_status(orchestrator: OrchestratorDep) -> SlotStatus:
    """Report whether a run holds the job slot and what Transcribe has under its name."""

    registry = orchestrator.registry
    try:
        jobs = await registry.existing_jobs()
    except RegistryError as exc:
        logger.exception("Could not list transcription jobs", exc_info=exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return SlotStatus(
        job_name=registry.job_name,
        busy=orchestrator.slot_lock.locked(),
        jobs=[SlotJob(name=job["name"], status=job["status"]) for job in jobs],
    )
