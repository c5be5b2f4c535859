from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic.functional_validators import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Remote search
    search_api_url: str = Field(default="https://trystract.com/beta/api/search")
    search_num_results: int = Field(default=100)
    search_return_ranking_signals: bool = Field(default=True)
    search_timeout_seconds: float = Field(default=30.0)

    # Storage
    database_url: str = Field(default="sqlite+aiosqlite:///ranking.db")

    # Logging
    log_level: str = Field(default="INFO")
    enable_console_logging: bool = Field(default=True)

    # Network
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip():
            return v.strip().upper()
        return "INFO"


# Single, concrete settings instance that callers import directly
settings: Settings = Settings()
