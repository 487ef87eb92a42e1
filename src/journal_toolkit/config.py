"""
Runtime configuration.

Settings come from environment variables through pydantic-settings, the same way
the walkthrough script and the API factory are configured:

    STORAGE_BACKEND=postgres DATABASE_URL=postgresql://... python -m journal_toolkit.walkthrough

STORAGE_BACKEND      'memory' (default) or 'postgres'
DATABASE_URL         required for 'postgres'; 'postgresql+asyncpg://' URLs are accepted
ELEVENLABS_API_KEY   enables the speech service when set
ELEVENLABS_VOICE_ID  default voice for text-to-speech
ELEVENLABS_MODEL_ID  text-to-speech model
ELEVENLABS_BASE_URL  API root, override for proxies
LOG_LEVEL            loguru level for entry points (default INFO)
"""

from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VOICE_ID = "pNInz6obpgDQGcFmaJgB"
DEFAULT_TTS_MODEL_ID = "eleven_monolingual_v1"
DEFAULT_ELEVENLABS_BASE_URL = "https://api.elevenlabs.io/v1"


class JournalSettings(BaseSettings):
    """Field names match the environment variables above, case-insensitively."""

    storage_backend: Literal["memory", "postgres"] = "memory"
    database_url: str | None = None
    elevenlabs_api_key: str | None = None
    elevenlabs_voice_id: str = DEFAULT_VOICE_ID
    elevenlabs_model_id: str = DEFAULT_TTS_MODEL_ID
    elevenlabs_base_url: str = DEFAULT_ELEVENLABS_BASE_URL
    log_level: str = "INFO"

    model_config = SettingsConfigDict(extra="ignore")

    @field_validator("storage_backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("database_url", "elevenlabs_api_key", mode="before")
    @classmethod
    def empty_to_none(cls, v: str | None) -> str | None:
        """Treat empty strings as missing."""
        if v == "":
            return None
        return v

    @model_validator(mode="after")
    def validate_backend(self) -> "JournalSettings":
        if self.storage_backend == "postgres" and not self.database_url:
            raise ValueError("DATABASE_URL must be set when STORAGE_BACKEND=postgres")
        return self
