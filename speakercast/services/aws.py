"""Shared AWS helpers for the S3 and Polly clients."""

from __future__ import annotations

from typing import Any

import boto3

from speakercast.config.settings import S3Config, settings


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    credentials: S3Config | None = None,
) -> boto3.client:
    """Build a boto3 client, using static keys only when both are configured.

    Without keys boto3 falls back to its own chain (env vars, profile,
    instance role).
    """

    source = credentials or settings.s3
    client_kwargs: dict[str, Any] = {"region_name": region_name or source.region}
    if source.access_key and source.secret_key:
        client_kwargs["aws_access_key_id"] = source.access_key
        client_kwargs["aws_secret_access_key"] = source.secret_key.get_secret_value()
    return boto3.client(service_name, **client_kwargs)


def object_url(bucket: str, key: str, region: str) -> str:
    """Return the virtual-hosted public URL of an S3 object."""

    if region == "us-east-1":
        return f"https://{bucket}.s3.amazonaws.com/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


__all__ = ["create_boto3_client", "object_url"]
