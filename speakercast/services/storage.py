"""Artifact storage backends: the local uploads directory or an S3 bucket.

Both backends implement :class:`ArtifactStore`. The backend is picked once at
startup by :func:`build_artifact_store`; nothing downstream branches on it.
A ``put`` only returns after the bytes are complete at their final location,
so a returned :class:`Artifact` is always safe to hand to a playback client.
"""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable
from urllib.parse import quote, unquote

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from speakercast.config.settings import Settings
from speakercast.errors import NotFoundError, StoreError
from speakercast.services.aws import create_boto3_client, object_url

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_EXTENSIONS: tuple[str, ...] = (".mp3", ".wav", ".m4a", ".flac")
_MISSING_KEY_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(frozen=True)
class Artifact:
    """A published, playable audio file and where it lives."""

    identifier: str
    public_id: str
    location: str
    url: str
    size: int
    created_at: datetime
    modified_at: datetime
    display_name: str | None = None
    format: str = "mp3"


class ArtifactStore(ABC):
    """Storage contract shared by the local and remote backends."""

    backend: str = "unknown"

    @abstractmethod
    async def put(
        self,
        local_path: str | Path,
        public_id: str,
        *,
        display_name: str | None = None,
    ) -> Artifact:
        """Publish ``local_path`` under ``public_id``; last write wins."""

    @abstractmethod
    async def delete(self, identifier: str) -> bool:
        ...

    @abstractmethod
    async def list(self) -> list[Artifact]:
        ...

    @abstractmethod
    async def stat(self, identifier: str) -> Artifact:
        """Return the artifact or raise :class:`NotFoundError`."""


def _check_identifier(identifier: str) -> None:
    """Reject names that could escape the storage namespace."""

    if (
        not identifier
        or identifier.startswith(".")
        or "/" in identifier
        or "\\" in identifier
        or "\x00" in identifier
    ):
        raise NotFoundError(f"Track '{identifier}' not found")


class LocalArtifactStore(ArtifactStore):
    """Artifacts kept in a local directory and served by a static mount."""

    backend = "local"

    def __init__(
        self,
        root: str | Path,
        *,
        url_prefix: str = "/audio",
        allowed_extensions: Iterable[str] = DEFAULT_AUDIO_EXTENSIONS,
    ) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._url_prefix = "/" + url_prefix.strip("/")
        self._extensions = {ext.lower() for ext in allowed_extensions}

    @property
    def root(self) -> Path:
        return self._root

    async def put(
        self,
        local_path: str | Path,
        public_id: str,
        *,
        display_name: str | None = None,
    ) -> Artifact:
        source = Path(local_path)
        filename = f"{public_id}{source.suffix.lower() or '.mp3'}"
        _check_identifier(filename)
        return await run_in_threadpool(self._publish, source, filename, display_name)

    async def delete(self, identifier: str) -> bool:
        try:
            path = self._resolve(identifier)
        except NotFoundError:
            return False
        try:
            await run_in_threadpool(path.unlink)
        except FileNotFoundError:
            return False
        logger.info("Deleted local artifact %s", identifier)
        return True

    async def list(self) -> list[Artifact]:
        return await run_in_threadpool(self._list_sync)

    async def stat(self, identifier: str) -> Artifact:
        path = self._resolve(identifier)
        try:
            return await run_in_threadpool(self._describe, path)
        except FileNotFoundError as exc:
            raise NotFoundError(f"Track '{identifier}' not found") from exc

    def _publish(self, source: Path, filename: str, display_name: str | None) -> Artifact:
        target = self._root / filename
        # Hidden and outside the extension allow-list, so never listed.
        partial = self._root / f".{filename}.partial"
        try:
            shutil.copyfile(source, partial)
            with partial.open("rb") as handle:
                os.fsync(handle.fileno())
            os.replace(partial, target)
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise StoreError(f"Failed to publish {filename}: {exc}") from exc

        artifact = self._describe(target, display_name)
        logger.info("Published local artifact %s (%d bytes)", filename, artifact.size)
        return artifact

    def _list_sync(self) -> list[Artifact]:
        artifacts: list[Artifact] = []
        for path in sorted(self._root.iterdir()):
            if not self._is_playable(path.name) or not path.is_file():
                continue
            try:
                artifacts.append(self._describe(path))
            except FileNotFoundError:
                # Deleted between iterdir and stat.
                continue
        return artifacts

    def _is_playable(self, name: str) -> bool:
        return not name.startswith(".") and Path(name).suffix.lower() in self._extensions

    def _resolve(self, identifier: str) -> Path:
        _check_identifier(identifier)
        path = self._root / identifier
        if not self._is_playable(identifier) or not path.is_file():
            raise NotFoundError(f"Track '{identifier}' not found")
        return path

    def _describe(self, path: Path, display_name: str | None = None) -> Artifact:
        stats = path.stat()
        created = getattr(stats, "st_birthtime", stats.st_ctime)
        return Artifact(
            identifier=path.name,
            public_id=path.stem,
            location=str(path),
            url=f"{self._url_prefix}/{quote(path.name)}",
            size=stats.st_size,
            created_at=datetime.fromtimestamp(created, tz=timezone.utc),
            modified_at=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            display_name=display_name,
            format=path.suffix.lstrip(".").lower(),
        )


class S3ArtifactStore(ArtifactStore):
    """Artifacts uploaded to an S3 bucket under a folder prefix."""

    backend = "s3"

    def __init__(
        self,
        client: Any,
        *,
        bucket: str,
        folder: str = "esp32-audio",
        region: str = "us-east-1",
        resource_type: str = "video",
        content_type: str = "audio/mpeg",
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._folder = folder.strip("/")
        self._region = region
        self._resource_type = resource_type
        self._content_type = content_type

    def _key(self, identifier: str) -> str:
        return f"{self._folder}/{identifier}" if self._folder else identifier

    def _prefix(self) -> str:
        return f"{self._folder}/" if self._folder else ""

    async def put(
        self,
        local_path: str | Path,
        public_id: str,
        *,
        display_name: str | None = None,
    ) -> Artifact:
        if not self._bucket:
            raise StoreError("S3 bucket name is not configured.")

        source = Path(local_path)
        identifier = f"{public_id}{source.suffix.lower() or '.mp3'}"
        _check_identifier(identifier)
        key = self._key(identifier)
        metadata = {"resource-type": self._resource_type}
        if display_name:
            metadata["display-name"] = quote(display_name)

        try:
            await run_in_threadpool(
                self._client.upload_file,
                str(source),
                self._bucket,
                key,
                ExtraArgs={"ContentType": self._content_type, "Metadata": metadata},
            )
            head = await run_in_threadpool(
                self._client.head_object, Bucket=self._bucket, Key=key
            )
        except (BotoCoreError, ClientError, S3UploadFailedError, OSError) as exc:
            raise StoreError(f"Failed to upload {identifier} to S3: {exc}") from exc

        logger.info("Uploaded artifact s3://%s/%s", self._bucket, key)
        return self._from_head(identifier, head)

    async def delete(self, identifier: str) -> bool:
        try:
            await self.stat(identifier)
        except NotFoundError:
            return False

        try:
            await run_in_threadpool(
                self._client.delete_object,
                Bucket=self._bucket,
                Key=self._key(identifier),
            )
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Failed to delete {identifier} from S3: {exc}") from exc
        logger.info("Deleted artifact s3://%s/%s", self._bucket, self._key(identifier))
        return True

    async def list(self) -> list[Artifact]:
        try:
            return await run_in_threadpool(self._list_sync)
        except (BotoCoreError, ClientError) as exc:
            raise StoreError(f"Failed to list S3 artifacts: {exc}") from exc

    async def stat(self, identifier: str) -> Artifact:
        _check_identifier(identifier)
        try:
            head = await run_in_threadpool(
                self._client.head_object,
                Bucket=self._bucket,
                Key=self._key(identifier),
            )
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_KEY_CODES:
                raise NotFoundError(f"Track '{identifier}' not found") from exc
            raise StoreError(f"Failed to stat {identifier}: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"Failed to stat {identifier}: {exc}") from exc
        return self._from_head(identifier, head)

    def _list_sync(self) -> list[Artifact]:
        prefix = self._prefix()
        paginator = self._client.get_paginator("list_objects_v2")
        artifacts: list[Artifact] = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            for entry in page.get("Contents", []):
                identifier = entry["Key"][len(prefix):]
                if not identifier or "/" in identifier:
                    continue
                artifacts.append(
                    self._build(
                        identifier,
                        size=int(entry.get("Size", 0)),
                        modified=entry.get("LastModified"),
                    )
                )
        return artifacts

    def _from_head(self, identifier: str, head: dict[str, Any]) -> Artifact:
        metadata = head.get("Metadata") or {}
        display_name = metadata.get("display-name")
        return self._build(
            identifier,
            size=int(head.get("ContentLength", 0)),
            modified=head.get("LastModified"),
            display_name=unquote(display_name) if display_name else None,
        )

    def _build(
        self,
        identifier: str,
        *,
        size: int,
        modified: datetime | None,
        display_name: str | None = None,
    ) -> Artifact:
        key = self._key(identifier)
        timestamp = modified or datetime.now(timezone.utc)
        # S3 keeps no separate creation time; objects are immutable so they match.
        return Artifact(
            identifier=identifier,
            public_id=key.rsplit(".", 1)[0],
            location=f"s3://{self._bucket}/{key}",
            url=object_url(self._bucket, key, self._region),
            size=size,
            created_at=timestamp,
            modified_at=timestamp,
            display_name=display_name,
            format=Path(identifier).suffix.lstrip(".").lower(),
        )


def build_artifact_store(config: Settings) -> ArtifactStore:
    """Instantiate the backend selected by ``config.storage.backend``."""

    storage = config.storage
    if storage.backend == "s3":
        return S3ArtifactStore(
            create_boto3_client("s3", region_name=config.s3.region, credentials=config.s3),
            bucket=config.s3.bucket_name,
            folder=config.s3.folder,
            region=config.s3.region,
            resource_type=config.s3.resource_type,
        )
    return LocalArtifactStore(
        storage.uploads_dir,
        url_prefix=storage.url_prefix,
        allowed_extensions=storage.allowed_extensions,
    )


__all__ = [
    "Artifact",
    "ArtifactStore",
    "DEFAULT_AUDIO_EXTENSIONS",
    "LocalArtifactStore",
    "S3ArtifactStore",
    "build_artifact_store",
]
