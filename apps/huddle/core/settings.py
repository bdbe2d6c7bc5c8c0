from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "huddle.db"


class DuplicateSessionPolicy(str, Enum):
    """What happens when a user joins while already bound elsewhere."""

    reject_new = "reject_new"
    evict_old = "evict_old"


class Settings(BaseSettings):
    """Unified application settings for Huddle.

    Loads from env with support for repo ".env" files. Avoids manual load_dotenv().
    """

    _app_env = (os.getenv("APP_ENV") or "").strip().lower()
    _env_files = (
        []
        if _app_env in {"test", "ci"}
        else [
            str((Path(__file__).resolve().parents[1] / ".env")),  # apps/huddle/.env
            str((Path(__file__).resolve().parents[3] / ".env")),  # repo root .env
        ]
    )

    model_config = SettingsConfigDict(
        env_file=_env_files,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # --- App / Core ---
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_name: str = Field(default="huddle", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    # Logging
    log_level: str | None = Field(default=None, alias="HUDDLE_LOG_LEVEL")
    log_level_fallback: str | None = Field(default=None, alias="LOG_LEVEL")

    cors_allow_origins: list[str] = Field(default=["*"], alias="CORS_ALLOW_ORIGINS")

    # Database
    database_url: str = Field(
        default=f"sqlite:///{DEFAULT_DB_PATH}",
        alias="DATABASE_URL",
    )

    # --- Realtime ---
    max_total_connections: int = Field(default=100, alias="HUDDLE_MAX_TOTAL_CONNECTIONS", ge=1)
    max_anonymous_connections: int = Field(
        default=10, alias="HUDDLE_MAX_ANONYMOUS_CONNECTIONS", ge=0
    )
    auth_timeout_seconds: float = Field(default=30.0, alias="HUDDLE_AUTH_TIMEOUT_SECONDS", gt=0)
    heartbeat_interval_seconds: float = Field(
        default=25.0, alias="HUDDLE_HEARTBEAT_INTERVAL_SECONDS", gt=0
    )
    sweep_interval_seconds: float = Field(
        default=60.0, alias="HUDDLE_SWEEP_INTERVAL_SECONDS", gt=0
    )
    max_missed_heartbeats: int = Field(
        default=0,
        alias="HUDDLE_MAX_MISSED_HEARTBEATS",
        ge=0,
        description="0 keeps transport-only reaping; N>0 also reaps after N silent heartbeats.",
    )
    duplicate_session_policy: DuplicateSessionPolicy = Field(
        default=DuplicateSessionPolicy.reject_new,
        alias="HUDDLE_DUPLICATE_SESSION_POLICY",
    )
    enable_debug_routes: bool = Field(default=True, alias="HUDDLE_ENABLE_DEBUG_ROUTES")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


# Convenience singleton for modules still expecting a module-level "settings"
settings = get_settings()
