"""Value objects passed between the voice pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class JobStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_backend(cls, raw: str | None) -> "JobStatus":
        """Map an Amazon Transcribe status string onto the pipeline states."""

        value = (raw or "").strip().upper()
        if value == "QUEUED":
            return cls.SUBMITTED
        if value in (cls.SUBMITTED.value, cls.IN_PROGRESS.value, cls.COMPLETED.value, cls.FAILED.value):
            return cls(value)
        return cls.UNKNOWN


@dataclass(frozen=True)
class AudioSource:
    """Fetchable voice note plus the conversation it arrived in."""

    uri: str
    conversation_id: str


@dataclass(frozen=True)
class StoredAudioRef:
    """Location of the uploaded voice note in object storage."""

    bucket: str
    key: str
    uri: str

    @property
    def s3_uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


@dataclass(frozen=True)
class JobHandle:
    """Address of a submitted transcription job."""

    name: str
    media_uri: str


@dataclass(frozen=True)
class JobSnapshot:
    """Point-in-time view of a transcription job."""

    name: str
    status: JobStatus
    raw_status: str
    result_uri: Optional[str] = None
    failure_reason: Optional[str] = None


@dataclass(frozen=True)
class Transcript:
    """Best transcript candidate extracted from a job result."""

    text: str
    job_name: str = ""


@dataclass(frozen=True)
class CompletionReply:
    """Text generated by the completion backend for one transcript."""

    text: str
    model: str
