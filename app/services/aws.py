"""Shared AWS helpers for service clients."""

from __future__ import annotations

from typing import Any

import boto3

from app.config.settings import settings


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    aws_access_key_id: str | None = None,
    aws_secret_access_key: str | None = None,
) -> Any:
    """Instantiate a boto3 client using configured credentials if available."""

    region = region_name or settings.aws.region
    client_kwargs: dict[str, Any] = {"region_name": region}
    if aws_access_key_id and aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = aws_access_key_id
        client_kwargs["aws_secret_access_key"] = aws_secret_access_key
    elif settings.aws.access_key and settings.aws.secret_key:
        client_kwargs["aws_access_key_id"] = settings.aws.access_key
        client_kwargs["aws_secret_access_key"] = settings.aws.secret_key
    return boto3.client(service_name, **client_kwargs)


def client_error_code(exc: Exception) -> str:
    """Return the AWS error code of a ``ClientError`` or an empty string."""

    response = getattr(exc, "response", None) or {}
    return str(response.get("Error", {}).get("Code", ""))


def client_error_status(exc: Exception) -> int | None:
    """Return the HTTP status code AWS attached to a ``ClientError``."""

    response = getattr(exc, "response", None) or {}
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return int(status) if status is not None else None


__all__ = ["create_boto3_client", "client_error_code", "client_error_status"]
