"""Transcription polling stage (Stage 04) of the voice pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from app.config.settings import settings
from app.domain.models import JobHandle, JobStatus
from app.services.errors import JobFailedError, JobTimeoutError
from app.services.transcribe import JobRegistry
from app.telemetry import POLL_ATTEMPTS

logger = logging.getLogger("app.services.voice_pipeline")

SleepFn = Callable[[float], Awaitable[None]]
ClockFn = Callable[[], float]

_WAITING_STATES = (JobStatus.SUBMITTED, JobStatus.IN_PROGRESS)


class JobPoller:
    """Wait for a transcription job to reach COMPLETED or FAILED.

    ``sleep`` and ``clock`` are injectable so tests can replay a status
    sequence without real delays. Cancelling the awaiting task stops the loop
    at the next suspension point.
    """

    def __init__(
        self,
        registry: JobRegistry,
        *,
        interval_seconds: float | None = None,
        max_attempts: int | None = None,
        max_wait_seconds: float | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self._registry = registry
        self._interval = (
            interval_seconds if interval_seconds is not None else settings.transcribe.poll_interval_seconds
        )
        self._max_attempts = max_attempts if max_attempts is not None else settings.transcribe.max_attempts
        self._max_wait = max_wait_seconds if max_wait_seconds is not None else settings.transcribe.max_wait_seconds
        self._sleep = sleep
        self._clock = clock

    async def poll(self, handle: JobHandle) -> str:
        """Return the transcript location once ``handle`` completes."""

        started = self._clock()
        attempts = 0
        while True:
            attempts += 1
            status = await self._registry.get_status(handle)
            POLL_ATTEMPTS.labels(status=status.value).inc()

            if status is JobStatus.COMPLETED:
                location = self._registry.get_result_location(handle)
                logger.info("Job '%s' completed after %s polls", handle.name, attempts)
                return location

            if status is JobStatus.FAILED:
                snapshot = self._registry.last_snapshot(handle)
                reason = snapshot.failure_reason if snapshot else None
                raise JobFailedError(
                    f"Transcription job '{handle.name}' failed: {reason or 'no reason given'}",
                    status=status.value,
                    reason=reason,
                )

            if status not in _WAITING_STATES:
                snapshot = self._registry.last_snapshot(handle)
                raw = snapshot.raw_status if snapshot else status.value
                raise JobFailedError(
                    f"Transcription job '{handle.name}' reported unexpected status '{raw}'",
                    status=raw,
                )

            if attempts >= self._max_attempts:
                raise JobTimeoutError(
                    f"Transcription job '{handle.name}' still {status.value} after {attempts} polls",
                    status=status.value,
                )
            elapsed = self._clock() - started
            if elapsed + self._interval > self._max_wait:
                raise JobTimeoutError(
                    f"Transcription job '{handle.name}' still {status.value} after {elapsed:.1f}s",
                    status=status.value,
                )

            logger.debug(
                "Job '%s' is %s (poll %s), waiting %.1fs",
                handle.name,
                status.value,
                attempts,
                self._interval,
            )
            await self._sleep(self._interval)


__all__ = ["JobPoller"]
