"""Transcript artifact download and parsing."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from app.pipelines.voice.results import ResultFetcher, extract_first_transcript
from app.services.errors import ParseError, TransferError
from app.services.storage import S3BlobStore
from conftest import FakeS3Client, transcript_artifact

URI = "https://transcripts.example/transcription_job/1.json"


def _fetch(handler, uri: str = URI, **kwargs):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            fetcher = ResultFetcher(http_client=client, **kwargs)
            return await fetcher.fetch(uri, job_name="transcription_job")

    return asyncio.run(scenario())


def test_fetch_returns_first_candidate_only():
    body = json.dumps(transcript_artifact("hello world", "hallo world")).encode()

    transcript = _fetch(lambda request: httpx.Response(200, content=body))

    assert transcript.text == "hello world"
    assert transcript.job_name == "transcription_job"


def test_fetch_spills_large_artifacts_to_disk_and_still_parses():
    long_text = "word " * 50_000
    body = json.dumps(transcript_artifact(long_text)).encode()

    transcript = _fetch(lambda request: httpx.Response(200, content=body), spool_max_bytes=1024)

    assert transcript.text == long_text


def test_fetch_missing_transcript_field_is_parse_error():
    body = json.dumps({"results": {"items": []}}).encode()

    with pytest.raises(ParseError):
        _fetch(lambda request: httpx.Response(200, content=body))


def test_fetch_empty_candidate_list_is_parse_error():
    body = json.dumps({"results": {"transcripts": []}}).encode()

    with pytest.raises(ParseError):
        _fetch(lambda request: httpx.Response(200, content=body))


def test_fetch_malformed_json_is_parse_error():
    with pytest.raises(ParseError):
        _fetch(lambda request: httpx.Response(200, content=b"{not json"))


def test_fetch_http_error_is_transfer_error():
    with pytest.raises(TransferError):
        _fetch(lambda request: httpx.Response(403, text="AccessDenied"))


def test_fetch_connection_failure_is_transfer_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransferError):
        _fetch(handler)


def test_fetch_reads_s3_locations_through_blob_store():
    s3 = FakeS3Client()
    s3.objects[("transcripts-bucket", "transcription_job.json")] = json.dumps(
        transcript_artifact("from the bucket")
    ).encode()
    fetcher = ResultFetcher(blob_store=S3BlobStore(s3))

    transcript = asyncio.run(fetcher.fetch("s3://transcripts-bucket/transcription_job.json"))

    assert transcript.text == "from the bucket"


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {"results": None},
        {"results": {"transcripts": [{"text": "wrong key"}]}},
        {"results": {"transcripts": [{"transcript": 42}]}},
    ],
)
def test_extract_first_transcript_rejects_unexpected_shapes(payload):
    with pytest.raises(ParseError):
        extract_first_transcript(payload)


def test_fetch_reads_output_bucket_urls_with_credentials():
    s3 = FakeS3Client()
    s3.objects[("out-bucket", "transcription_job.json")] = json.dumps(
        transcript_artifact("from the output bucket")
    ).encode()

    def refuse(request):
        return httpx.Response(403, text="AccessDenied")

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            fetcher = ResultFetcher(http_client=client, blob_store=S3BlobStore(s3))
            return await fetcher.fetch("https://s3.us-east-1.amazonaws.com/out-bucket/transcription_job.json")

    transcript = asyncio.run(scenario())

    assert transcript.text == "from the output bucket"


def test_fetch_keeps_presigned_urls_on_http():
    body = json.dumps(transcript_artifact("presigned")).encode()
    requested: list[str] = []

    def handler(request):
        requested.append(str(request.url))
        return httpx.Response(200, content=body)

    uri = "https://s3.us-east-1.amazonaws.com/aws-prod-transcripts/job.json?X-Amz-Signature=abc"
    transcript = _fetch(handler, uri=uri, blob_store=S3BlobStore(FakeS3Client()))

    assert transcript.text == "presigned"
    assert requested == [uri]
