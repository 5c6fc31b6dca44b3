"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

PIPELINE_RUNS = Counter(
    "voice_pipeline_runs_total",
    "Voice pipeline runs by final outcome",
    ("outcome",),
)

PIPELINE_FAILURES = Counter(
    "voice_pipeline_failures_total",
    "Voice pipeline failures by stage and error type",
    ("stage", "error"),
)

STAGE_LATENCY = Histogram(
    "voice_pipeline_stage_duration_seconds",
    "Duration of each voice pipeline stage in seconds",
    ("stage",),
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

POLL_ATTEMPTS = Counter(
    "transcription_poll_attempts_total",
    "Status reads issued while waiting for transcription jobs",
    ("status",),
)

STAGE_RETRIES = Counter(
    "voice_pipeline_stage_retries_total",
    "Retries of transient voice pipeline stage failures",
    ("stage",),
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_stage(stage: str, duration_seconds: float) -> None:
    """Record how long one pipeline stage took."""

    STAGE_LATENCY.labels(stage=stage).observe(max(duration_seconds, 0.0))


def record_run(outcome: str, *, stage: str | None = None, error: str | None = None) -> None:
    """Count a finished run and, for failures, where it broke."""

    PIPELINE_RUNS.labels(outcome=outcome).inc()
    if stage and error:
        PIPELINE_FAILURES.labels(stage=stage, error=error).inc()
