"""Shared fakes standing in for boto3 clients and chat delivery."""

from __future__ import annotations

import io
import json
from pathlib import Path
import sys
from typing import Any

import httpx
import pytest
from botocore.exceptions import ClientError

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from app.domain.models import AudioSource  # noqa: E402

RESULT_HOST = "https://transcripts.example"


def client_error(code: str, message: str, operation: str, status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def transcript_artifact(*candidates: str) -> dict[str, Any]:
    return {
        "jobName": "transcription_job",
        "status": "COMPLETED",
        "results": {
            "transcripts": [{"transcript": text} for text in candidates],
            "items": [],
        },
    }


class FakeS3Client:
    """In-memory ``put_object``/``get_object``."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.put_calls = 0

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str) -> dict:
        self.put_calls += 1
        self.objects[(Bucket, Key)] = bytes(Body)
        return {"ETag": '"etag"'}

    def get_object(self, *, Bucket: str, Key: str) -> dict:
        if (Bucket, Key) not in self.objects:
            raise client_error("NoSuchKey", "The specified key does not exist.", "GetObject", 404)
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}


class FakeTranscribeClient:
    """In-memory Transcribe that reads media from a ``FakeS3Client``.

    Each started job walks ``status_script`` one status per read, staying on
    the last entry. A completed job's transcript is ``transcript of <audio>``.
    """

    def __init__(self, s3: FakeS3Client, status_script: list[str] | None = None) -> None:
        self.s3 = s3
        self.status_script = status_script or ["IN_PROGRESS", "COMPLETED"]
        self.jobs: dict[str, dict[str, Any]] = {}
        self.results: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self._serial = 0

    def list_transcription_jobs(self, **params: Any) -> dict:
        self.calls.append(("list", params.get("JobNameContains", "")))
        needle = params.get("JobNameContains", "")
        return {
            "TranscriptionJobSummaries": [
                {"TranscriptionJobName": name, "TranscriptionJobStatus": job["status"]}
                for name, job in self.jobs.items()
                if needle in name
            ]
        }

    def delete_transcription_job(self, *, TranscriptionJobName: str) -> dict:
        self.calls.append(("delete", TranscriptionJobName))
        if TranscriptionJobName not in self.jobs:
            raise client_error(
                "BadRequestException",
                "The requested job couldn't be found. Check the job name and try your request again.",
                "DeleteTranscriptionJob",
            )
        del self.jobs[TranscriptionJobName]
        return {}

    def start_transcription_job(self, **params: Any) -> dict:
        name = params["TranscriptionJobName"]
        self.calls.append(("create", name))
        if name in self.jobs:
            raise client_error(
                "ConflictException",
                "The requested job name already exists.",
                "StartTranscriptionJob",
            )
        bucket, key = params["Media"]["MediaFileUri"][len("s3://"):].split("/", 1)
        audio = self.s3.objects[(bucket, key)].decode()
        self._serial += 1
        uri = f"{RESULT_HOST}/{name}/{self._serial}.json"
        self.results[uri] = transcript_artifact(f"transcript of {audio}")
        self.jobs[name] = {
            "status": "QUEUED",
            "script": list(self.status_script),
            "uri": uri,
            "params": params,
        }
        return {"TranscriptionJob": {"TranscriptionJobName": name, "TranscriptionJobStatus": "QUEUED"}}

    def get_transcription_job(self, *, TranscriptionJobName: str) -> dict:
        self.calls.append(("get", TranscriptionJobName))
        job = self.jobs.get(TranscriptionJobName)
        if job is None:
            raise client_error(
                "BadRequestException",
                "The requested job couldn't be found. Check the job name and try your request again.",
                "GetTranscriptionJob",
            )
        if len(job["script"]) > 1:
            job["status"] = job["script"].pop(0)
        else:
            job["status"] = job["script"][0]
        payload: dict[str, Any] = {
            "TranscriptionJobName": TranscriptionJobName,
            "TranscriptionJobStatus": job["status"],
        }
        if job["status"] == "COMPLETED":
            payload["Transcript"] = {"TranscriptFileUri": job["uri"]}
        if job["status"] == "FAILED":
            payload["FailureReason"] = "Unsupported media"
        return {"TranscriptionJob": payload}


def result_transport(transcribe: FakeTranscribeClient) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        payload = transcribe.results.get(str(request.url))
        if payload is None:
            return httpx.Response(404, text="missing")
        return httpx.Response(200, content=json.dumps(payload).encode())

    return httpx.MockTransport(handler)


class RecordingSink:
    """Reply sink that remembers every delivery."""

    def __init__(self, fail_text: bool = False) -> None:
        self.texts: list[tuple[str, str]] = []
        self.audio: list[tuple[str, bytes, str]] = []
        self.fail_text = fail_text

    async def send_text(self, conversation_id: str, text: str) -> None:
        if self.fail_text:
            from app.services.errors import DeliveryError

            raise DeliveryError("chat unavailable")
        self.texts.append((conversation_id, text))

    async def send_audio(self, conversation_id: str, audio_bytes: bytes, *, media_type: str) -> None:
        self.audio.append((conversation_id, audio_bytes, media_type))


class EchoCompletionBackend:
    """Completion backend answering ``reply to <prompt>``."""

    def __init__(self) -> None:
        self.prompts: list[tuple[str, str]] = []

    async def complete(self, prompt: str, model: str) -> str:
        self.prompts.append((prompt, model))
        return f"reply to {prompt}"


async def download_uri_bytes(source: AudioSource) -> bytes:
    """Treat the audio URI itself as the voice note payload."""

    return source.uri.encode()


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture()
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture()
def fake_transcribe(fake_s3: FakeS3Client) -> FakeTranscribeClient:
    return FakeTranscribeClient(fake_s3)


__all__ = [
    "EchoCompletionBackend",
    "FakeS3Client",
    "FakeTranscribeClient",
    "RESULT_HOST",
    "RecordingSink",
    "client_error",
    "download_uri_bytes",
    "no_sleep",
    "result_transport",
    "transcript_artifact",
]
