from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseSettings):
    """Artifact storage configuration"""

    backend: Literal["local", "s3"] = "local"
    uploads_dir: str = "uploads"
    temp_dir: str = "uploads/.incoming"
    url_prefix: str = "/audio"
    allowed_extensions: list[str] = [".mp3", ".wav", ".m4a", ".flac"]
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class S3Config(BaseSettings):
    """S3 configuration"""

    access_key: Optional[str] = None
    secret_key: Optional[SecretStr] = None
    region: str = "us-east-1"
    bucket_name: str = "speakercast-audio"
    folder: str = "esp32-audio"
    resource_type: str = Field(
        default="video",
        description="Resource kind recorded on uploaded objects (raw media, not audio).",
    )

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class PollyConfig(BaseSettings):
    """Amazon Polly configuration."""

    region: str = "us-east-1"
    default_voice_id: str = "Joanna"
    engine: str = "neural"
    max_text_length: int = Field(default=3000, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="POLLY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class TranscoderConfig(BaseSettings):
    """External transcoder configuration."""

    binary: str = "ffmpeg"

    model_config = SettingsConfigDict(
        env_prefix="TRANSCODER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class DeviceConfig(BaseSettings):
    """Speaker device configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    amplifier_gpio: Optional[int] = Field(
        default=None,
        description="Sysfs GPIO number driving the amplifier enable line.",
    )
    switch_grace_ms: int = Field(default=100, ge=0, le=2000)
    pump_interval_ms: int = Field(default=5, ge=1, le=100)
    chunk_size: int = Field(default=4096, ge=256)
    connect_timeout: float = Field(default=5.0, gt=0)
    player_command: list[str] = ["mpg123", "-q", "-"]

    model_config = SettingsConfigDict(
        env_prefix="DEVICE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "SpeakerCast Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/ingest_pipeline.log"

    # Storage
    storage: StorageConfig = Field(default_factory=StorageConfig)

    # S3
    s3: S3Config = Field(default_factory=S3Config)

    # Polly
    polly: PollyConfig = Field(default_factory=PollyConfig)

    # Transcoder
    transcoder: TranscoderConfig = Field(default_factory=TranscoderConfig)

    # Device
    device: DeviceConfig = Field(default_factory=DeviceConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
