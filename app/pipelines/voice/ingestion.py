"""Audio ingestion stage (Stage 01) of the voice pipeline."""

from __future__ import annotations

import logging

import httpx

from app.config.settings import settings
from app.domain.models import AudioSource
from app.services.errors import TransferError

logger = logging.getLogger("app.services.voice_pipeline")


async def read_audio_bytes(
    source: AudioSource,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> bytes:
    """Stream the voice note behind ``source.uri`` into memory."""

    client = http_client or httpx.AsyncClient(
        timeout=settings.pipeline.download_timeout_seconds,
        follow_redirects=True,
    )
    chunks: list[bytes] = []
    try:
        async with client.stream("GET", source.uri) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes():
                chunks.append(chunk)
    except httpx.HTTPStatusError as exc:
        raise TransferError(
            f"Audio download returned status {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise TransferError(f"Audio download failed: {exc}") from exc
    finally:
        if http_client is None:
            await client.aclose()

    audio_bytes = b"".join(chunks)
    if not audio_bytes:
        raise TransferError("Downloaded voice note is empty")
    logger.info(
        "Downloaded %s bytes of audio for conversation=%s",
        len(audio_bytes),
        source.conversation_id,
    )
    return audio_bytes


__all__ = ["read_audio_bytes"]
