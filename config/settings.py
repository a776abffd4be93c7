"""Application settings and configuration management."""
from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")

    LLM_BASE_URL: str = "https://ai.gateway.lovable.dev"
    LLM_ENDPOINT: str = "/v1/chat/completions"
    LLM_API_KEY_ENV: str = "LOVABLE_API_KEY"
    LLM_TIMEOUT_S: float = 30.0
    INTERVIEW_MODEL: str = "google/gemini-2.5-flash"
    CLASSIFIER_MODEL: str = "google/gemini-2.5-flash-lite"

    MAX_MESSAGE_LENGTH: int = 2000
    MAX_SPECIAL_CHARS: int = 10

    RATE_LIMIT_WINDOW_S: float = 60.0
    RATE_LIMIT_MAX_REQUESTS: int = 10
    PREVIEW_RATE_LIMIT_MAX_REQUESTS: int = 5

    PREVIEW_PACING: Literal["duration", "coverage"] = "duration"
    DEFAULT_DURATION: int = 10
    HISTORY_LIMIT: int = 20
    ENRICHMENT_WORKERS: int = 5

    DISTRESS_CONFIG: str = str(Path(__file__).resolve().parent / "distress.yaml")

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
