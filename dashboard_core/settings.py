"""Environment-backed settings for the dashboard service and Streamlit app.

Values load from environment variables (case-insensitive) or a `.env` file:

- API_BASE_URL: analytics backend the dashboard reads from
- REQUEST_TIMEOUT: seconds per backend request
- CORS_ORIGINS: JSON list of origins allowed to call the view-model API
- LOG_LEVEL: root logging level
- MAX_LABEL_LENGTH: axis label length before truncation
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dashboard_core.builder import DEFAULT_MAX_LABEL_LENGTH


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    api_base_url: str = "http://localhost:8000"
    request_timeout: float = Field(default=30.0, gt=0)
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"])
    log_level: str = "INFO"
    max_label_length: int = Field(default=DEFAULT_MAX_LABEL_LENGTH, gt=3)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
