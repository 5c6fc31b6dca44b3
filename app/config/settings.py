from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AwsConfig(BaseSettings):
    """AWS credentials shared by S3, Transcribe, Polly and Bedrock clients."""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"

    model_config = SettingsConfigDict(
        env_prefix="AWS_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class StorageConfig(BaseSettings):
    """S3 location the incoming voice note is uploaded to."""

    bucket_name: str = "chat-teste"
    audio_key: str = "audio/file.ogg"
    content_type: str = "audio/ogg"

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class TranscribeConfig(BaseSettings):
    """Amazon Transcribe batch job configuration."""

    job_name: str = "transcription_job"
    language_code: str = "en-US"
    media_format: str = "ogg"
    output_bucket: Optional[str] = Field(
        default=None,
        description="When set, Transcribe writes the result JSON to this bucket.",
    )
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    max_attempts: int = Field(default=120, ge=1)
    max_wait_seconds: float = Field(default=600.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIBE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class CompletionConfig(BaseSettings):
    """Text-completion backend configuration."""

    provider: Literal["openai", "bedrock"] = "openai"
    model: str = "gpt-3.5-turbo-instruct"
    max_tokens: int = Field(default=256, ge=1, le=4096)
    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=60.0, gt=0)
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
    )
    bedrock_region: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="COMPLETION_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


class TelegramConfig(BaseSettings):
    """Telegram bot configuration."""

    bot_token: SecretStr | None = None
    enabled: bool = True

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class SpeechConfig(BaseSettings):
    """Amazon Polly spoken reply configuration."""

    enabled: bool = False
    voice_id: str = "Joanna"
    output_format: str = "mp3"

    model_config = SettingsConfigDict(
        env_prefix="SPEECH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PipelineConfig(BaseSettings):
    """Retry and failure-reporting policy for a pipeline run."""

    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0.0)
    retry_max_delay_seconds: float = Field(default=30.0, ge=0.0)
    download_timeout_seconds: float = Field(default=30.0, gt=0)
    spool_max_bytes: int = Field(default=1_048_576, ge=1024)
    notify_on_failure: bool = True
    failure_message: str = "Sorry, I could not process your voice message. Please try again."

    model_config = SettingsConfigDict(
        env_prefix="PIPELINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Voice Reply Bot"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/voice_pipeline.log"
    transcript_log_file: str = "logs/transcripts.log"

    aws: AwsConfig = Field(default_factory=AwsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    transcribe: TranscribeConfig = Field(default_factory=TranscribeConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    speech: SpeechConfig = Field(default_factory=SpeechConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

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
