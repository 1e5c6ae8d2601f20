from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ServerMisconfiguration

DEFAULT_TRANSCRIPTION_MODEL = (
    "vaibhavs10/incredibly-fast-whisper:"
    "3ab86df6c8f54c11309d4d1f930ac292bad43ace52d10c80d87eb258b3c9f79c"
)
DEFAULT_GENERATION_MODEL = "anthropic/claude-3.5-haiku"


class Settings(BaseSettings):
    """Runtime configuration, loaded from environment variables and/or a .env file."""

    # Replicate
    replicate_api_token: str = ""
    replicate_base_url: str = "https://api.replicate.com/v1"
    request_timeout: float = 120.0
    prediction_timeout: Optional[float] = None

    # Transcoder
    ffmpeg_path: Optional[str] = None
    transcode_timeout: Optional[float] = None

    # Models
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL
    transcription_batch_size: int = 64
    transcription_strategy: Literal["transcode", "direct"] = "transcode"
    generation_model: str = DEFAULT_GENERATION_MODEL
    generation_max_tokens: int = 1024

    # Scratch files
    scratch_dir: Optional[str] = None
    scratch_prefix: str = "video_chapters"
    max_upload_bytes: Optional[int] = None

    # App
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def api_token_present(self) -> bool:
        return bool(self.replicate_api_token.strip())

    def require_api_token(self) -> str:
        if not self.api_token_present:
            raise ServerMisconfiguration("REPLICATE_API_TOKEN is not set")
        return self.replicate_api_token.strip()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Falls back to environment variables and defaults when the .env file is
    missing or unreadable.
    """
    try:
        return Settings()
    except OSError:
        return Settings(_env_file=None)  # type: ignore[call-arg]
