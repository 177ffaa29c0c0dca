"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Voice notes settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        transcription_backend: Active STT adapter ("remote" or "local").
        openai_api_key: Bearer credential for the remote speech service.
            Empty means the remote adapter is unavailable.
        uploads_dir: Directory where audio and attachments are stored.
        database_url: Async SQLAlchemy connection string for SQLite.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Transcription backend ---
    # Exactly one adapter is active: "remote" (HTTP speech API) or "local" (faster-whisper)
    transcription_backend: str = "remote"

    # Remote speech-recognition service
    openai_api_key: str = ""  # Required when transcription_backend="remote"
    remote_transcription_url: str = "https://api.openai.com/v1/audio/transcriptions"
    remote_transcription_model: str = "whisper-1"
    transcription_timeout: float = 60.0  # Seconds per remote request

    # Local model (faster-whisper)
    whisper_model: str = "base"  # Model size: tiny, base, small, medium, large-v3
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_default_language: str = ""  # Empty = auto-detect; ISO 639-1 code e.g. "en"

    # --- Uploads ---
    uploads_dir: str = "data/uploads"
    uploads_url_prefix: str = "/uploads"
    max_transcribe_bytes: int = 25 * 1024 * 1024
    max_upload_bytes: int = 50 * 1024 * 1024
    max_attachments: int = 10

    # --- Application ---
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    database_url: str = "sqlite+aiosqlite:///data/voicenotes.db"

    # --- Client ---
    api_base_url: str = "http://localhost:8000"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
