"""Completion bridge and backend error translation."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest
from botocore.exceptions import EndpointConnectionError

from app.domain.models import Transcript
from app.services.errors import TransportError, UpstreamError
from app.services.llm_client import (
    BedrockCompletionBackend,
    CompletionBridge,
    OpenAICompletionBackend,
    build_completion_backend,
)
from conftest import EchoCompletionBackend, client_error

OPENAI_URL = "https://api.openai.com/v1/completions"


class FakeCompletions:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _openai_client(outcome) -> SimpleNamespace:
    return SimpleNamespace(completions=FakeCompletions(outcome))


def test_bridge_sends_transcript_with_fixed_model_and_strips_reply():
    backend = EchoCompletionBackend()
    bridge = CompletionBridge(backend, model="test-model")

    reply = asyncio.run(bridge.complete(Transcript(text="turn on the lights")))

    assert reply.text == "reply to turn on the lights"
    assert reply.model == "test-model"
    assert backend.prompts == [("turn on the lights", "test-model")]


def test_bridge_rejects_blank_output():
    class BlankBackend:
        async def complete(self, prompt, model):
            return "\n\n  "

    with pytest.raises(UpstreamError):
        asyncio.run(CompletionBridge(BlankBackend(), model="m").complete(Transcript(text="hi")))


def test_openai_backend_returns_first_choice_text():
    client = _openai_client(SimpleNamespace(choices=[SimpleNamespace(text="\n\nSure, turning on the lights.")]))
    backend = OpenAICompletionBackend(client)

    reply = asyncio.run(CompletionBridge(backend, model="gpt-3.5-turbo-instruct").complete(Transcript(text="turn on the lights")))

    assert reply.text == "Sure, turning on the lights."
    call = client.completions.calls[0]
    assert call["model"] == "gpt-3.5-turbo-instruct"
    assert call["prompt"] == "turn on the lights"


def test_openai_status_error_becomes_upstream_error_with_status_and_body():
    request = httpx.Request("POST", OPENAI_URL)
    response = httpx.Response(429, request=request, json={"error": {"message": "rate limited"}})
    error = openai.APIStatusError("rate limited", response=response, body={"error": {"message": "rate limited"}})
    backend = OpenAICompletionBackend(_openai_client(error))

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(backend.complete("hi", "m"))

    assert excinfo.value.status_code == 429
    assert excinfo.value.body == {"error": {"message": "rate limited"}}


def test_openai_connection_error_becomes_transport_error():
    error = openai.APIConnectionError(request=httpx.Request("POST", OPENAI_URL))
    backend = OpenAICompletionBackend(_openai_client(error))

    with pytest.raises(TransportError):
        asyncio.run(backend.complete("hi", "m"))


def test_openai_call_is_not_retried_by_the_backend():
    error = openai.APIConnectionError(request=httpx.Request("POST", OPENAI_URL))
    client = _openai_client(error)

    with pytest.raises(TransportError):
        asyncio.run(OpenAICompletionBackend(client).complete("hi", "m"))

    assert len(client.completions.calls) == 1


class FakeBedrockClient:
    def __init__(self, outcome) -> None:
        self.outcome = outcome
        self.calls: list[dict] = []

    def converse(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def test_bedrock_backend_joins_text_blocks():
    client = FakeBedrockClient(
        {"output": {"message": {"content": [{"text": "Sure,"}, {"image": {}}, {"text": "done."}]}}}
    )

    text = asyncio.run(BedrockCompletionBackend(client).complete("turn on the lights", "amazon.nova-micro-v1:0"))

    assert text == "Sure,\ndone."
    assert client.calls[0]["modelId"] == "amazon.nova-micro-v1:0"
    assert client.calls[0]["messages"][0]["content"][0]["text"] == "turn on the lights"


def test_bedrock_client_error_becomes_upstream_error():
    client = FakeBedrockClient(client_error("ThrottlingException", "slow down", "Converse", 429))

    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(BedrockCompletionBackend(client).complete("hi", "m"))

    assert excinfo.value.status_code == 429
    assert excinfo.value.body["Code"] == "ThrottlingException"


def test_bedrock_connection_error_becomes_transport_error():
    client = FakeBedrockClient(EndpointConnectionError(endpoint_url="https://bedrock-runtime"))

    with pytest.raises(TransportError):
        asyncio.run(BedrockCompletionBackend(client).complete("hi", "m"))


def test_build_completion_backend_selects_provider():
    assert isinstance(build_completion_backend("bedrock"), BedrockCompletionBackend)
    assert isinstance(build_completion_backend("openai"), OpenAICompletionBackend)
