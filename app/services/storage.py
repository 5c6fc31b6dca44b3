"""S3 storage helpers for voice notes and transcript artifacts."""

from __future__ import annotations

import logging
import re
from typing import Any, AsyncIterator
from urllib.parse import urlparse

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from app.config.settings import settings
from app.domain.models import StoredAudioRef
from app.services.aws import create_boto3_client
from app.services.errors import TransferError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def _object_url(bucket: str, key: str, region: str) -> str:
    if region == "us-east-1":
        return f"https://{bucket}.s3.amazonaws.com/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


# s3.amazonaws.com, s3.<region>.amazonaws.com, s3-<region>.amazonaws.com
_PATH_STYLE_HOST = re.compile(r"^s3([.-][a-z0-9-]+)?\.amazonaws\.com$")


def split_s3_uri(uri: str) -> tuple[str, str]:
    """Return ``(bucket, key)`` for ``s3://``, virtual-hosted or path-style S3 URLs."""

    parsed = urlparse(uri)
    host = parsed.netloc.lower()
    if parsed.scheme == "s3":
        bucket, key = parsed.netloc, parsed.path.lstrip("/")
    elif parsed.scheme in ("http", "https") and _PATH_STYLE_HOST.match(host):
        bucket, _, key = parsed.path.lstrip("/").partition("/")
    elif parsed.scheme in ("http", "https") and ".s3." in f".{host}":
        bucket = parsed.netloc.split(".s3", 1)[0]
        key = parsed.path.lstrip("/")
    else:
        raise TransferError(f"Not an S3 location: {uri}")
    if not bucket or not key:
        raise TransferError(f"Incomplete S3 location: {uri}")
    return bucket, key


def is_bucket_object_uri(uri: str) -> bool:
    """True when ``uri`` names an S3 object that must be read with credentials.

    Presigned URLs carry their signature in the query string and are fetched
    over plain HTTP instead.
    """

    parsed = urlparse(uri)
    if parsed.scheme == "s3":
        return True
    if parsed.query:
        return False
    try:
        split_s3_uri(uri)
    except TransferError:
        return False
    return True


class S3BlobStore:
    """Put and stream objects in S3 without blocking the event loop."""

    def __init__(self, client: Any | None = None, *, region: str | None = None) -> None:
        self._region = region or settings.aws.region
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_boto3_client("s3", region_name=self._region)
        return self._client

    async def put(
        self,
        data: bytes,
        bucket: str,
        key: str,
        *,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload ``data`` to ``bucket/key``, replacing any object stored there."""

        if not data:
            raise TransferError("Refusing to upload an empty payload.")
        try:
            await run_in_threadpool(
                self.client.put_object,
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise TransferError(f"Failed to upload s3://{bucket}/{key}: {exc}") from exc

        logger.info("Uploaded %s bytes to s3://%s/%s", len(data), bucket, key)
        return _object_url(bucket, key, self._region)

    async def upload_audio(self, data: bytes) -> StoredAudioRef:
        """Store a voice note at the configured fixed key."""

        bucket = settings.storage.bucket_name
        key = settings.storage.audio_key
        uri = await self.put(data, bucket, key, content_type=settings.storage.content_type)
        return StoredAudioRef(bucket=bucket, key=key, uri=uri)

    async def get(self, uri: str) -> AsyncIterator[bytes]:
        """Yield the object at ``uri`` in chunks."""

        bucket, key = split_s3_uri(uri)
        try:
            response = await run_in_threadpool(self.client.get_object, Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise TransferError(f"Failed to read s3://{bucket}/{key}: {exc}") from exc

        body = response["Body"]
        try:
            while True:
                try:
                    chunk = await run_in_threadpool(body.read, _CHUNK_SIZE)
                except (BotoCoreError, ClientError) as exc:
                    raise TransferError(f"Failed while streaming s3://{bucket}/{key}: {exc}") from exc
                if not chunk:
                    break
                yield chunk
        finally:
            close = getattr(body, "close", None)
            if close is not None:
                close()


__all__ = ["S3BlobStore", "is_bucket_object_uri", "split_s3_uri"]
