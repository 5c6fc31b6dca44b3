"""Voice reply pipeline package.

Modules are organised by the order in which a voice note is processed:

1. `ingestion` – stream the voice note from the messaging channel.
2. `polling` – wait for the Transcribe job under its state machine.
3. `results` – download the transcript artifact and keep the first candidate.
4. `orchestrator` – run every stage, hold the job slot, report failures.
5. `flow` – human-readable description of the end-to-end stages.
"""

from .flow import PipelineStage, VoiceReplyPipeline
from .ingestion import read_audio_bytes
from .orchestrator import PipelineOrchestrator, build_orchestrator
from .polling import JobPoller
from .results import ResultFetcher, extract_first_transcript
from .types import PipelineRunResult, ReplySink, RunStatus, Stage

__all__ = [
    "JobPoller",
    "PipelineOrchestrator",
    "PipelineRunResult",
    "PipelineStage",
    "ReplySink",
    "ResultFetcher",
    "RunStatus",
    "Stage",
    "VoiceReplyPipeline",
    "build_orchestrator",
    "extract_first_transcript",
    "read_audio_bytes",
]
