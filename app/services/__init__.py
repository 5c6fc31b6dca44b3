"""Service layer helpers for external integrations."""

from .errors import (
    CompletionError,
    DeliveryError,
    InvalidStateError,
    JobFailedError,
    JobTimeoutError,
    NotFoundError,
    ParseError,
    PipelineError,
    RegistryError,
    SpeechError,
    TransferError,
    TransportError,
    UpstreamError,
)
from .llm_client import (
    BedrockCompletionBackend,
    CompletionBridge,
    OpenAICompletionBackend,
    build_completion_backend,
)
from .speech import PollySpeechService, SpeechResult
from .storage import S3BlobStore
from .transcribe import AmazonTranscribeBackend, JobRegistry

__all__ = [
    "AmazonTranscribeBackend",
    "BedrockCompletionBackend",
    "CompletionBridge",
    "CompletionError",
    "DeliveryError",
    "InvalidStateError",
    "JobFailedError",
    "JobRegistry",
    "JobTimeoutError",
    "NotFoundError",
    "OpenAICompletionBackend",
    "ParseError",
    "PipelineError",
    "PollySpeechService",
    "RegistryError",
    "S3BlobStore",
    "SpeechError",
    "SpeechResult",
    "TransferError",
    "TransportError",
    "UpstreamError",
    "build_completion_backend",
]
