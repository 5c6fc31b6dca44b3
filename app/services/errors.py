"""Typed failures raised by the voice pipeline adapters.

Every adapter translates its SDK exceptions into one of these classes so the
orchestrator can decide on retries from ``retryable`` alone.
"""

from __future__ import annotations

from typing import ClassVar


class PipelineError(RuntimeError):
    """Base class for every failure a pipeline stage may raise."""

    retryable: ClassVar[bool] = False


class TransferError(PipelineError):
    """Raised when downloading or uploading bytes fails."""

    retryable = True


class RegistryError(PipelineError):
    """Raised when the transcription backend rejects or fails a request."""

    retryable = True


class NotFoundError(RegistryError):
    """Raised when the addressed transcription job no longer exists."""


class InvalidStateError(PipelineError):
    """Raised when a job is asked for something its status does not allow."""


class JobFailedError(PipelineError):
    """Raised when a job ends FAILED or reports a status we do not know."""

    def __init__(self, message: str, *, status: str | None = None, reason: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class JobTimeoutError(JobFailedError):
    """Raised when polling exceeds its attempt or elapsed-time bound."""


class ParseError(PipelineError):
    """Raised when a transcript artifact is malformed or lacks the transcript."""


class CompletionError(PipelineError):
    """Base class for completion backend failures."""


class UpstreamError(CompletionError):
    """Raised when the completion backend answers with a structured error."""

    def __init__(self, status_code: int | None, body: object) -> None:
        super().__init__(f"Completion backend returned status {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class TransportError(CompletionError):
    """Raised when the completion backend cannot be reached."""


class SpeechError(PipelineError):
    """Raised when the spoken reply cannot be synthesized."""


class DeliveryError(PipelineError):
    """Raised when a reply cannot be sent back to the conversation."""


__all__ = [
    "PipelineError",
    "TransferError",
    "RegistryError",
    "NotFoundError",
    "InvalidStateError",
    "JobFailedError",
    "JobTimeoutError",
    "ParseError",
    "CompletionError",
    "UpstreamError",
    "TransportError",
    "SpeechError",
    "DeliveryError",
]
