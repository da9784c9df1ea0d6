"""Shared fixtures: isolated settings, fake ffmpeg/Polly/S3 and a fake decoder."""

from __future__ import annotations

import asyncio
import io
import sys
import wave
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from speakercast.config.settings import Settings, StorageConfig  # noqa: E402
from speakercast.device.hardware import StreamDecoder, VirtualAmplifier  # noqa: E402
from speakercast.errors import StreamOpenError, SynthesisError, TranscodeError  # noqa: E402
from speakercast.main import create_app  # noqa: E402
from speakercast.pipelines.ingest import IngestionPipeline  # noqa: E402
from speakercast.services import LocalArtifactStore  # noqa: E402
from speakercast.services.speech import SynthesisResult  # noqa: E402


class FakeTranscoder:
    """Stands in for ffmpeg: writes a tagged copy of the input."""

    def __init__(self) -> None:
        self.fail = False
        self.jobs: list[Any] = []

    async def run(self, job):
        self.jobs.append(job)
        if self.fail:
            raise TranscodeError("ffmpeg failed (1): Invalid data found when processing input")
        job.output_path.write_bytes(b"ID3" + job.input_path.read_bytes()[:1024])
        return job.output_path


class FakeSynthesizer:
    def __init__(self) -> None:
        self.fail = False
        self.calls: list[tuple[str, str | None]] = []

    async def synthesize(self, text, *, voice_id=None):
        self.calls.append((text, voice_id))
        if self.fail:
            raise SynthesisError("Failed to synthesize speech: throttled")
        return SynthesisResult(
            audio_bytes=b"\xff\xfb" + text.encode("utf-8") * 10,
            media_type="audio/mpeg",
            voice_id=voice_id or "Joanna",
        )


class FailingStore(LocalArtifactStore):
    """Local store whose publish step always fails."""

    def __init__(self, root, error: Exception) -> None:
        super().__init__(root)
        self.error = error
        self.put_calls = 0

    async def put(self, local_path, public_id, *, display_name=None):
        self.put_calls += 1
        raise self.error


class FakeS3Client:
    """In-memory subset of the boto3 S3 client used by S3ArtifactStore."""

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.fail_uploads = False

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        if self.fail_uploads:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject")
        self.objects[key] = {
            "Body": Path(filename).read_bytes(),
            "Metadata": dict((ExtraArgs or {}).get("Metadata", {})),
            "ContentType": (ExtraArgs or {}).get("ContentType"),
            "LastModified": datetime.now(timezone.utc),
        }

    def head_object(self, Bucket, Key):
        entry = self.objects.get(Key)
        if entry is None:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {
            "ContentLength": len(entry["Body"]),
            "LastModified": entry["LastModified"],
            "Metadata": entry["Metadata"],
            "ContentType": entry["ContentType"],
        }

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)
        return {}

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        client = self

        class _Paginator:
            def paginate(self, Bucket, Prefix=""):
                contents = [
                    {"Key": key, "Size": len(entry["Body"]), "LastModified": entry["LastModified"]}
                    for key, entry in sorted(client.objects.items())
                    if key.startswith(Prefix)
                ]
                yield {"Contents": contents}

        return _Paginator()


class FakeDecoder(StreamDecoder):
    """Decoder that "plays" a fixed number of chunks per URL."""

    def __init__(self, chunks_per_stream: int = 3) -> None:
        self.chunks_per_stream = chunks_per_stream
        self.fail_urls: set[str] = set()
        self.opened: list[str] = []
        self.close_calls = 0
        self.current: str | None = None
        self._remaining = 0
        self.open_delay = 0.0
        self.close_error: Exception | None = None
        self.pump_error: Exception | None = None

    @property
    def is_running(self) -> bool:
        return self.current is not None

    async def open(self, url):
        if self.open_delay:
            await asyncio.sleep(self.open_delay)
        if not url.startswith(("http://", "https://")) or url in self.fail_urls:
            raise StreamOpenError(f"Unsupported stream URL: {url}")
        assert self.current is None, "two decode sessions open at once"
        self.current = url
        self.opened.append(url)
        self._remaining = self.chunks_per_stream

    async def pump(self):
        if self.pump_error is not None:
            raise self.pump_error
        if self.current is None or self._remaining == 0:
            return False
        self._remaining -= 1
        return True

    async def close(self):
        self.close_calls += 1
        self.current = None
        self._remaining = 0
        if self.close_error is not None:
            raise self.close_error


def make_wav(seconds: float = 1.0, sample_rate: int = 44100) -> bytes:
    frames = int(seconds * sample_rate)
    with io.BytesIO() as buffer:
        with wave.open(buffer, "wb") as wave_file:
            wave_file.setnchannels(2)
            wave_file.setsampwidth(2)
            wave_file.setframerate(sample_rate)
            wave_file.writeframes(b"\x01\x00\xff\xff" * frames)
        return buffer.getvalue()


@pytest.fixture
def app_settings(tmp_path: Path) -> Settings:
    return Settings(
        log_file=str(tmp_path / "logs" / "app.log"),
        pipeline_log_file=str(tmp_path / "logs" / "pipeline.log"),
        storage=StorageConfig(
            backend="local",
            uploads_dir=str(tmp_path / "uploads"),
            temp_dir=str(tmp_path / "uploads" / ".incoming"),
        ),
    )


@pytest.fixture
def temp_dir(app_settings: Settings) -> Path:
    return Path(app_settings.storage.temp_dir)


@pytest.fixture
def uploads_dir(app_settings: Settings) -> Path:
    return Path(app_settings.storage.uploads_dir)


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def fake_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def local_store(uploads_dir: Path) -> LocalArtifactStore:
    return LocalArtifactStore(uploads_dir)


@pytest.fixture
def pipeline(local_store, fake_transcoder, fake_synthesizer, temp_dir) -> IngestionPipeline:
    return IngestionPipeline(local_store, fake_transcoder, fake_synthesizer, temp_dir=temp_dir)


@pytest.fixture
def server_app(app_settings, fake_transcoder, fake_synthesizer, temp_dir):
    """Server app whose pipeline uses the fakes instead of ffmpeg and Polly."""

    app = create_app(app_settings)
    app.state.ingestion_pipeline = IngestionPipeline(
        app.state.artifact_store,
        fake_transcoder,
        fake_synthesizer,
        temp_dir=temp_dir,
        max_upload_bytes=app_settings.storage.max_upload_bytes,
    )
    return app


@pytest.fixture
def client(server_app) -> TestClient:
    return TestClient(server_app)


@pytest.fixture
def fake_s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def amplifier() -> VirtualAmplifier:
    return VirtualAmplifier()


@pytest.fixture
def fake_decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def wav_bytes() -> bytes:
    return make_wav()


@pytest.fixture
def failing_store_factory(uploads_dir):
    def _factory(error: Exception) -> FailingStore:
        return FailingStore(uploads_dir, error)

    return _factory


@pytest.fixture
def wav_factory():
    return make_wav
