"""Text-completion clients used to answer transcribed voice notes."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import openai
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.domain.models import CompletionReply, Transcript
from app.services.aws import client_error_status, create_boto3_client
from app.services.errors import TransportError, UpstreamError

logger = logging.getLogger(__name__)


class CompletionBackend(Protocol):
    async def complete(self, prompt: str, model: str) -> str:
        ...


class OpenAICompletionBackend:
    """Call the OpenAI completions endpoint with SDK retries disabled."""

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            api_key = settings.completion.openai_api_key
            self._client = openai.AsyncOpenAI(
                api_key=api_key.get_secret_value() if api_key else None,
                max_retries=0,
                timeout=settings.completion.timeout_seconds,
            )
        return self._client

    async def complete(self, prompt: str, model: str) -> str:
        try:
            response = await self.client.completions.create(
                model=model,
                prompt=prompt,
                max_tokens=settings.completion.max_tokens,
                temperature=settings.completion.temperature,
            )
        except openai.APIStatusError as exc:
            raise UpstreamError(exc.status_code, exc.body) from exc
        except openai.APIConnectionError as exc:
            raise TransportError(f"OpenAI request failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise UpstreamError(None, "OpenAI returned no choices")
        return choices[0].text or ""


class BedrockCompletionBackend:
    """Invoke Amazon Bedrock ``converse`` with the configured inference settings."""

    def __init__(self, client: Any | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_boto3_client(
                "bedrock-runtime",
                region_name=settings.completion.bedrock_region or settings.aws.region,
            )
        return self._client

    async def complete(self, prompt: str, model: str) -> str:
        inference_cfg = {
            "maxTokens": settings.completion.max_tokens,
            "temperature": min(settings.completion.temperature, 1.0),
        }
        try:
            response = await run_in_threadpool(
                self.client.converse,
                modelId=model,
                messages=[{"role": "user", "content": [{"text": prompt}]}],
                inferenceConfig=inference_cfg,
            )
        except ClientError as exc:
            raise UpstreamError(client_error_status(exc), exc.response.get("Error", {})) from exc
        except BotoCoreError as exc:
            raise TransportError(f"Bedrock request failed: {exc}") from exc

        content_blocks = (
            response.get("output", {})
            .get("message", {})
            .get("content", [])
        )
        texts = [block.get("text", "") for block in content_blocks if block.get("text")]
        return "\n".join(texts)


class CompletionBridge:
    """Turn a transcript into a reply with one backend call per run."""

    def __init__(self, backend: CompletionBackend, *, model: str | None = None) -> None:
        self._backend = backend
        self._model = model or settings.completion.model

    @property
    def model(self) -> str:
        return self._model

    async def complete(self, prompt: Transcript) -> CompletionReply:
        raw = await self._backend.complete(prompt.text, self._model)
        text = (raw or "").strip()
        if not text:
            raise UpstreamError(None, raw)
        logger.info("Completion model=%s returned %s chars", self._model, len(text))
        return CompletionReply(text=text, model=self._model)


def build_completion_backend(provider: str | None = None) -> CompletionBackend:
    """Return the backend named by ``COMPLETION_PROVIDER``."""

    name = provider or settings.completion.provider
    if name == "bedrock":
        return BedrockCompletionBackend()
    return OpenAICompletionBackend()


__all__ = [
    "BedrockCompletionBackend",
    "CompletionBackend",
    "CompletionBridge",
    "OpenAICompletionBackend",
    "build_completion_backend",
]
