"""End-to-end voice reply run.

One run downloads a voice note, transcribes it through the shared Transcribe
job slot, asks the completion backend for an answer and sends that answer to
the conversation the note came from. Upload through fetch hold ``slot_lock``:
the S3 key and the job name are fixed, so a second run entering that window
would delete the first run's job. Later runs queue on the lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar
from uuid import uuid4

from app.config.settings import settings
from app.domain.models import AudioSource
from app.services.errors import PipelineError
from app.services.llm_client import CompletionBridge, build_completion_backend
from app.services.speech import PollySpeechService
from app.services.storage import S3BlobStore
from app.services.transcribe import AmazonTranscribeBackend, JobRegistry
from app.telemetry import STAGE_RETRIES, observe_stage, record_run

from .flow import VoiceReplyPipeline
from .ingestion import read_audio_bytes
from .polling import JobPoller
from .results import ResultFetcher
from .types import PipelineRunResult, ReplySink, RunStatus, Stage

logger = logging.getLogger("app.services.voice_pipeline")
transcript_logger = logging.getLogger("app.logs.transcript")

T = TypeVar("T")

_RETRYABLE_STAGES = frozenset(
    description.stage
    for description in VoiceReplyPipeline.describe()
    if description.retryable
)


class PipelineOrchestrator:
    """Compose storage, transcription and completion into one reply flow."""

    def __init__(
        self,
        *,
        blob_store: S3BlobStore,
        registry: JobRegistry,
        poller: JobPoller,
        fetcher: ResultFetcher,
        completion: CompletionBridge,
        speech: PollySpeechService | None = None,
        download: Callable[[AudioSource], Awaitable[bytes]] = read_audio_bytes,
        retry_attempts: int | None = None,
        retry_base_delay: float | None = None,
        retry_max_delay: float | None = None,
        notify_on_failure: bool | None = None,
        failure_message: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        cfg = settings.pipeline
        self._blob_store = blob_store
        self._registry = registry
        self._poller = poller
        self._fetcher = fetcher
        self._completion = completion
        self._speech = speech
        self._download = download
        self._retry_attempts = cfg.retry_attempts if retry_attempts is None else retry_attempts
        self._retry_base_delay = cfg.retry_base_delay_seconds if retry_base_delay is None else retry_base_delay
        self._retry_max_delay = cfg.retry_max_delay_seconds if retry_max_delay is None else retry_max_delay
        self._notify_on_failure = cfg.notify_on_failure if notify_on_failure is None else notify_on_failure
        self._failure_message = failure_message or cfg.failure_message
        self._sleep = sleep
        self.slot_lock = asyncio.Lock()

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    async def handle(self, audio: AudioSource, sink: ReplySink) -> PipelineRunResult:
        """Run every stage for ``audio`` and answer through ``sink``."""

        run_id = uuid4().hex[:12]
        conversation_id = audio.conversation_id
        stage = Stage.INGESTION
        transcript_text: str | None = None
        logger.info("Run %s started conversation=%s", run_id, conversation_id)

        try:
            audio_bytes = await self._run_stage(run_id, stage, lambda: self._download(audio))

            if self.slot_lock.locked():
                logger.info("Run %s waiting for the transcription slot", run_id)
            async with self.slot_lock:
                stage = Stage.UPLOAD
                ref = await self._run_stage(run_id, stage, lambda: self._blob_store.upload_audio(audio_bytes))

                stage = Stage.SUBMIT
                handle = await self._run_stage(run_id, stage, lambda: self._registry.submit_job(ref))

                stage = Stage.POLL
                location = await self._run_stage(run_id, stage, lambda: self._poller.poll(handle))

                stage = Stage.FETCH
                transcript = await self._run_stage(
                    run_id,
                    stage,
                    lambda: self._fetcher.fetch(location, job_name=handle.name),
                )
            transcript_text = transcript.text
            transcript_logger.info(
                "run=%s | conversation=%s | text=%s", run_id, conversation_id, transcript_text
            )

            stage = Stage.COMPLETION
            reply = await self._run_stage(run_id, stage, lambda: self._completion.complete(transcript))

            stage = Stage.DELIVERY
            await self._run_stage(run_id, stage, lambda: sink.send_text(conversation_id, reply.text))
        except Exception as exc:
            return await self._fail(run_id, audio, sink, stage, exc, transcript_text)

        speech_error = await self._deliver_speech(run_id, conversation_id, reply.text, sink)
        record_run(RunStatus.SUCCEEDED.value)
        logger.info("Run %s delivered reply conversation=%s", run_id, conversation_id)
        return PipelineRunResult(
            run_id=run_id,
            conversation_id=conversation_id,
            status=RunStatus.SUCCEEDED,
            stage=Stage.SPEECH if self._speech else Stage.DELIVERY,
            transcript=transcript_text,
            reply=reply.text,
            speech_error=speech_error,
        )

    async def _run_stage(self, run_id: str, stage: Stage, call: Callable[[], Awaitable[T]]) -> T:
        attempts = self._retry_attempts if stage in _RETRYABLE_STAGES else 1
        attempt = 0
        while True:
            attempt += 1
            started = time.perf_counter()
            try:
                return await call()
            except PipelineError as exc:
                if not exc.retryable or attempt >= attempts:
                    raise
                delay = min(self._retry_base_delay * (2 ** (attempt - 1)), self._retry_max_delay)
                STAGE_RETRIES.labels(stage=stage.value).inc()
                logger.warning(
                    "Run %s stage=%s attempt %s/%s failed (%s); retrying in %.1fs",
                    run_id,
                    stage.value,
                    attempt,
                    attempts,
                    exc,
                    delay,
                )
                await self._sleep(delay)
            finally:
                observe_stage(stage.value, time.perf_counter() - started)

    async def _deliver_speech(
        self, run_id: str, conversation_id: str, text: str, sink: ReplySink
    ) -> str | None:
        if self._speech is None:
            return None
        try:
            speech = await self._run_stage(run_id, Stage.SPEECH, lambda: self._speech.synthesize(text))
            await sink.send_audio(conversation_id, speech.audio_bytes, media_type=speech.media_type)
        except PipelineError as exc:
            logger.warning("Run %s spoken reply skipped: %s", run_id, exc)
            return str(exc)
        return None

    async def _fail(
        self,
        run_id: str,
        audio: AudioSource,
        sink: ReplySink,
        stage: Stage,
        exc: Exception,
        transcript_text: str | None,
    ) -> PipelineRunResult:
        error_type = type(exc).__name__
        logger.error(
            "Run %s failed stage=%s conversation=%s audio=%s error=%s: %s",
            run_id,
            stage.value,
            audio.conversation_id,
            audio.uri,
            error_type,
            exc,
            exc_info=exc,
        )
        record_run(RunStatus.FAILED.value, stage=stage.value, error=error_type)

        if self._notify_on_failure and stage is not Stage.DELIVERY:
            try:
                await sink.send_text(audio.conversation_id, self._failure_message)
            except Exception as notify_exc:
                logger.warning("Run %s could not send failure notice: %s", run_id, notify_exc, exc_info=notify_exc)

        return PipelineRunResult(
            run_id=run_id,
            conversation_id=audio.conversation_id,
            status=RunStatus.FAILED,
            stage=stage,
            transcript=transcript_text,
            error=str(exc),
            error_type=error_type,
        )


def build_orchestrator() -> PipelineOrchestrator:
    """Wire the production adapters from settings."""

    blob_store = S3BlobStore()
    registry = JobRegistry(AmazonTranscribeBackend())
    return PipelineOrchestrator(
        blob_store=blob_store,
        registry=registry,
        poller=JobPoller(registry),
        fetcher=ResultFetcher(blob_store=blob_store),
        completion=CompletionBridge(build_completion_backend()),
        speech=PollySpeechService() if settings.speech.enabled else None,
    )


__all__ = ["PipelineOrchestrator", "build_orchestrator"]
