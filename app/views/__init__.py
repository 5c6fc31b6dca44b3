"""Pydantic schemas used as views in the MVC architecture."""

from .common import ErrorResponse
from .voice import (
    SlotJob,
    SlotStatus,
    StageDescription,
    VoiceRunAccepted,
    VoiceRunRequest,
    VoiceRunResult,
)

__all__ = [
    "ErrorResponse",
    "SlotJob",
    "SlotStatus",
    "StageDescription",
    "VoiceRunAccepted",
    "VoiceRunRequest",
    "VoiceRunResult",
]
