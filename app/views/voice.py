"""Pydantic schemas for the voice pipeline endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field


class VoiceRunRequest(BaseModel):
    audio_uri: str = Field(min_length=1)
    conversation_id: str = Field(min_length=1)
    wait: bool = False


class VoiceRunAccepted(BaseModel):
    status: str = "accepted"
    conversation_id: str


class VoiceRunResult(BaseModel):
    run_id: str
    conversation_id: str
    status: str
    stage: str
    transcript: Optional[str] = None
    reply: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    speech_error: Optional[str] = None


class StageDescription(BaseModel):
    order: int
    stage: str
    module: str
    summary: str
    exclusive: bool
    retryable: bool


class SlotJob(BaseModel):
    name: str
    status: str


class SlotStatus(BaseModel):
    job_name: str
    busy: bool
    jobs: List[SlotJob] = []
