"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    PIPELINE_FAILURES,
    PIPELINE_RUNS,
    POLL_ATTEMPTS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    STAGE_LATENCY,
    STAGE_RETRIES,
    observe_request,
    observe_stage,
    record_run,
)

__all__ = [
    "ERROR_COUNTER",
    "PIPELINE_FAILURES",
    "PIPELINE_RUNS",
    "POLL_ATTEMPTS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "STAGE_LATENCY",
    "STAGE_RETRIES",
    "observe_request",
    "observe_stage",
    "record_run",
]
