"""
AI Producer Configuration

Environment-based configuration for the producer assistant.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _app_version_from_package() -> str:
    """Read version from installed package metadata."""
    try:
        from importlib.metadata import version
        return version("ai-producer")
    except Exception:
        return "0.0.0-unknown"


# Providers shown in the model picker. Catalog ids look like "provider/name".
ALLOWED_PROVIDERS: tuple[str, ...] = ("openai", "google", "anthropic", "moonshot")

DEFAULT_MODEL: str = "anthropic/claude-4-5-sonnet"

# Host numeric conventions.
MIN_TEMPO: int = 10
MAX_TEMPO: int = 999
MIN_MIDI_KEY: int = 0
MAX_MIDI_KEY: int = 127
MIN_NOTE_VOLUME: int = 0
MAX_NOTE_VOLUME: int = 100
DEFAULT_NOTE_VOLUME: int = 100
TICKS_PER_BEAT: int = 48
TICKS_PER_BAR: int = TICKS_PER_BEAT * 4

SAMPLE_EXTENSIONS: tuple[str, ...] = (".wav", ".ogg", ".mp3", ".flac", ".ds")
DEFAULT_SAMPLE_LIMIT: int = 20


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "AI Producer"
    app_version: str = _app_version_from_package()
    debug: bool = False

    # OpenRouter (OpenAI-compatible chat completions)
    api_base_url: str = "https://openrouter.ai/api/v1"
    http_referer: str = "https://lmms.io"
    app_title: str = "LMMS AI Producer"
    default_model: str = DEFAULT_MODEL
    llm_timeout: float = 120  # seconds; surfaced as a network error when exceeded

    # Persisted user settings (agent.apikey / agent.model)
    config_path: Path = Path.home() / ".config" / "ai-producer" / "config.toml"

    # Sample library roots for the reference host
    factory_samples_dir: Optional[Path] = None
    user_samples_dir: Optional[Path] = None

    # Chat view
    thinking_display_chars: int = 800
    auto_scroll_threshold_px: int = 50
    scroll_latch_seconds: float = 0.1

    @model_validator(mode="after")
    def _warn_plain_http(self) -> "Settings":
        """Warn when the API key would travel over plain HTTP."""
        if self.api_base_url.startswith("http://"):
            logging.getLogger(__name__).warning(
                "PRODUCER_API_BASE_URL uses plain HTTP; the API key is sent unencrypted."
            )
        return self

    @property
    def completions_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/chat/completions"

    @property
    def models_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/models"

    model_config = SettingsConfigDict(
        env_prefix="PRODUCER_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience access
settings = get_settings()
