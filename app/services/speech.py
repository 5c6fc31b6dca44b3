"""Amazon Polly synthesis for spoken replies."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.services.aws import create_boto3_client
from app.services.errors import SpeechError

logger = logging.getLogger(__name__)

_MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "ogg_vorbis": "audio/ogg",
    "pcm": "audio/pcm",
}


@dataclass(frozen=True)
class SpeechResult:
    """Synthesised reply audio."""

    audio_bytes: bytes
    media_type: str
    voice_id: str


class PollySpeechService:
    """Convert reply text to speech with a fixed Polly voice."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        voice_id: str | None = None,
        output_format: str | None = None,
    ) -> None:
        self._client = client
        self._voice_id = voice_id or settings.speech.voice_id
        self._output_format = output_format or settings.speech.output_format

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_boto3_client("polly")
        return self._client

    async def synthesize(self, text: str) -> SpeechResult:
        if not text.strip():
            raise SpeechError("Nothing to synthesize.")
        try:
            response: dict[str, Any] = await run_in_threadpool(
                self.client.synthesize_speech,
                OutputFormat=self._output_format,
                Text=text,
                TextType="text",
                VoiceId=self._voice_id,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("Polly synth failed for voice '%s'", self._voice_id)
            raise SpeechError(f"Failed to synthesize speech: {exc}") from exc

        audio_stream = response.get("AudioStream")
        if audio_stream is None:
            raise SpeechError("Polly returned no audio stream.")
        audio_bytes = await run_in_threadpool(audio_stream.read)
        if not audio_bytes:
            raise SpeechError("Polly returned an empty audio stream.")

        return SpeechResult(
            audio_bytes=audio_bytes,
            media_type=_MEDIA_TYPES.get(self._output_format, "application/octet-stream"),
            voice_id=self._voice_id,
        )


__all__ = ["PollySpeechService", "SpeechResult"]
