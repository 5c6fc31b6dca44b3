"""Amazon Transcribe batch job integration.

The bot keeps exactly one job alive under a well-known name. Submitting a new
job first removes the previous one, so callers must serialise access to the
slot (see ``app.pipelines.voice.orchestrator``).
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.domain.models import JobHandle, JobSnapshot, JobStatus, StoredAudioRef
from app.services.aws import client_error_code, create_boto3_client
from app.services.errors import InvalidStateError, NotFoundError, RegistryError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NotFoundException", "ResourceNotFoundException"}


def _is_not_found(exc: Exception) -> bool:
    if client_error_code(exc) in _NOT_FOUND_CODES:
        return True
    # Transcribe answers BadRequestException for unknown job names.
    return client_error_code(exc) == "BadRequestException" and "couldn't be found" in str(exc)


class AmazonTranscribeBackend:
    """Thin async wrapper around the boto3 ``transcribe`` client."""

    def __init__(self, client: Any | None = None, *, region: str | None = None) -> None:
        self._region = region or settings.aws.region
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_boto3_client("transcribe", region_name=self._region)
        return self._client

    async def list_jobs(self, name_filter: str | None = None) -> list[dict[str, str]]:
        """Return ``{"name", "status"}`` summaries, following pagination."""

        summaries: list[dict[str, str]] = []
        params: dict[str, Any] = {}
        if name_filter:
            params["JobNameContains"] = name_filter
        while True:
            try:
                response = await run_in_threadpool(self.client.list_transcription_jobs, **params)
            except (BotoCoreError, ClientError) as exc:
                raise RegistryError(f"Failed to list transcription jobs: {exc}") from exc
            for summary in response.get("TranscriptionJobSummaries", []):
                summaries.append(
                    {
                        "name": summary.get("TranscriptionJobName", ""),
                        "status": summary.get("TranscriptionJobStatus", ""),
                    }
                )
            next_token = response.get("NextToken")
            if not next_token:
                return summaries
            params["NextToken"] = next_token

    async def delete_job(self, name: str) -> None:
        try:
            await run_in_threadpool(
                self.client.delete_transcription_job,
                TranscriptionJobName=name,
            )
        except (BotoCoreError, ClientError) as exc:
            if _is_not_found(exc):
                raise NotFoundError(f"Transcription job '{name}' does not exist") from exc
            raise RegistryError(f"Failed to delete transcription job '{name}': {exc}") from exc

    async def create_job(self, name: str, media_uri: str, language_code: str) -> str:
        params: dict[str, Any] = {
            "TranscriptionJobName": name,
            "LanguageCode": language_code,
            "Media": {"MediaFileUri": media_uri},
        }
        if settings.transcribe.media_format:
            params["MediaFormat"] = settings.transcribe.media_format
        if settings.transcribe.output_bucket:
            params["OutputBucketName"] = settings.transcribe.output_bucket
        try:
            response = await run_in_threadpool(self.client.start_transcription_job, **params)
        except (BotoCoreError, ClientError) as exc:
            raise RegistryError(f"Failed to start transcription job '{name}': {exc}") from exc
        return response.get("TranscriptionJob", {}).get("TranscriptionJobName", name)

    async def get_job(self, name: str) -> JobSnapshot:
        try:
            response = await run_in_threadpool(
                self.client.get_transcription_job,
                TranscriptionJobName=name,
            )
        except (BotoCoreError, ClientError) as exc:
            if _is_not_found(exc):
                raise NotFoundError(f"Transcription job '{name}' does not exist") from exc
            raise RegistryError(f"Failed to read transcription job '{name}': {exc}") from exc

        job = response.get("TranscriptionJob", {})
        raw_status = str(job.get("TranscriptionJobStatus", ""))
        return JobSnapshot(
            name=job.get("TranscriptionJobName", name),
            status=JobStatus.from_backend(raw_status),
            raw_status=raw_status,
            result_uri=job.get("Transcript", {}).get("TranscriptFileUri"),
            failure_reason=job.get("FailureReason"),
        )


class JobRegistry:
    """Owns the single transcription job slot."""

    def __init__(
        self,
        backend: AmazonTranscribeBackend,
        *,
        job_name: str | None = None,
        language_code: str | None = None,
    ) -> None:
        self._backend = backend
        self.job_name = job_name or settings.transcribe.job_name
        self._language_code = language_code or settings.transcribe.language_code
        self._snapshots: dict[str, JobSnapshot] = {}

    async def submit_job(self, ref: StoredAudioRef, language_code: str | None = None) -> JobHandle:
        """Replace whatever job occupies the slot with one for ``ref``."""

        await self._delete_existing()
        self._snapshots.pop(self.job_name, None)

        name = await self._backend.create_job(
            self.job_name,
            ref.s3_uri,
            language_code or self._language_code,
        )
        logger.info("Submitted transcription job '%s' for %s", name, ref.s3_uri)
        handle = JobHandle(name=name, media_uri=ref.s3_uri)
        self._snapshots[name] = JobSnapshot(
            name=name,
            status=JobStatus.SUBMITTED,
            raw_status=JobStatus.SUBMITTED.value,
        )
        return handle

    async def _delete_existing(self) -> None:
        try:
            await self._backend.delete_job(self.job_name)
        except NotFoundError:
            logger.debug("No previous transcription job named '%s'", self.job_name)
            return
        logger.info("Deleted previous transcription job '%s'", self.job_name)

    async def existing_jobs(self) -> list[dict[str, str]]:
        """List backend jobs occupying the slot (normally zero or one)."""

        summaries = await self._backend.list_jobs(self.job_name)
        return [summary for summary in summaries if summary["name"] == self.job_name]

    async def get_status(self, handle: JobHandle) -> JobStatus:
        snapshot = await self._backend.get_job(handle.name)
        self._snapshots[handle.name] = snapshot
        return snapshot.status

    def last_snapshot(self, handle: JobHandle) -> JobSnapshot | None:
        return self._snapshots.get(handle.name)

    def get_result_location(self, handle: JobHandle) -> str:
        snapshot = self._snapshots.get(handle.name)
        if snapshot is None or snapshot.status is not JobStatus.COMPLETED:
            current = snapshot.status.value if snapshot else "UNKNOWN"
            raise InvalidStateError(
                f"Job '{handle.name}' has no result while in state {current}"
            )
        if not snapshot.result_uri:
            raise InvalidStateError(f"Job '{handle.name}' completed without a transcript URI")
        return snapshot.result_uri


__all__ = ["AmazonTranscribeBackend", "JobRegistry"]
