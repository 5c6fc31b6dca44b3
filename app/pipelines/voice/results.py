"""Transcript retrieval stage (Stage 05) of the voice pipeline."""

from __future__ import annotations

import json
import logging
import tempfile
from typing import IO, Any

import httpx

from app.config.settings import settings
from app.domain.models import Transcript
from app.services.errors import ParseError, TransferError
from app.services.storage import S3BlobStore, is_bucket_object_uri

logger = logging.getLogger("app.services.voice_pipeline")


def extract_first_transcript(payload: Any) -> str:
    """Return ``results.transcripts[0].transcript`` from a Transcribe artifact."""

    try:
        candidate = payload["results"]["transcripts"][0]["transcript"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ParseError("Transcript artifact has no results.transcripts[0].transcript") from exc
    if not isinstance(candidate, str):
        raise ParseError("Transcript candidate is not a string")
    return candidate


class ResultFetcher:
    """Download a transcript artifact into a spooled file and parse it."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        blob_store: S3BlobStore | None = None,
        spool_max_bytes: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._http_client = http_client
        self._blob_store = blob_store
        self._spool_max_bytes = settings.pipeline.spool_max_bytes if spool_max_bytes is None else spool_max_bytes
        self._timeout = settings.pipeline.download_timeout_seconds if timeout_seconds is None else timeout_seconds

    async def fetch(self, result_uri: str, *, job_name: str = "") -> Transcript:
        with tempfile.SpooledTemporaryFile(max_size=self._spool_max_bytes, mode="w+b") as sink:
            if is_bucket_object_uri(result_uri):
                await self._download_s3(result_uri, sink)
            else:
                await self._download_http(result_uri, sink)
            sink.seek(0)
            try:
                payload = json.load(sink)
            except (UnicodeDecodeError, ValueError) as exc:
                raise ParseError(f"Transcript artifact is not valid JSON: {exc}") from exc

        text = extract_first_transcript(payload)
        logger.info("Fetched transcript for job '%s' (%s chars)", job_name, len(text))
        return Transcript(text=text, job_name=job_name)

    async def _download_s3(self, uri: str, sink: IO[bytes]) -> None:
        store = self._blob_store or S3BlobStore()
        async for chunk in store.get(uri):
            sink.write(chunk)

    async def _download_http(self, uri: str, sink: IO[bytes]) -> None:
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        try:
            async with client.stream("GET", uri) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    sink.write(chunk)
        except httpx.HTTPStatusError as exc:
            raise TransferError(
                f"Transcript download returned status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransferError(f"Transcript download failed: {exc}") from exc
        finally:
            if self._http_client is None:
                await client.aclose()


__all__ = ["ResultFetcher", "extract_first_transcript"]
