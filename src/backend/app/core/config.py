from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_PHANTOM_ID = "2487161782151911"


def _discover_env_files() -> tuple[str, ...]:
    """Determine which env files should be loaded."""
    files: list[str] = []

    custom_env = os.getenv("ENV_FILE")
    if custom_env and Path(custom_env).is_file():
        files.append(custom_env)

    app_parents = Path(__file__).resolve().parents
    for root in (app_parents[2], app_parents[4]):
        dot_env = root / ".env"
        if dot_env.is_file():
            files.append(str(dot_env))

    return tuple(dict.fromkeys(files))  # Preserve order, remove duplicates


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_discover_env_files(),
        env_file_encoding="utf-8",
        extra="allow",
    )

    env: str = Field(default="development", alias="ENV")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    cors_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(
        default="postgresql+psycopg://localhost:5432/leads",
        alias="DATABASE_URL",
    )
    database_sslmode: str | None = Field(default=None, alias="DATABASE_SSLMODE")
    database_pool_size: int = Field(default=5, alias="DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(default=5, alias="DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    scrape_backend: Literal["phantombuster", "sheets"] = Field(default="phantombuster", alias="SCRAPE_BACKEND")
    leads_on_conflict: Literal["ignore", "touch"] = Field(default="ignore", alias="LEADS_ON_CONFLICT")
    http_timeout_seconds: float = Field(default=30.0, alias="HTTP_TIMEOUT_SECONDS")

    phantom_buster_api_key: str | None = Field(default=None, alias="PHANTOM_BUSTER_API_KEY")
    phantom_buster_agent_id: str = Field(default=DEFAULT_PHANTOM_ID, alias="PHANTOM_BUSTER_AGENT_ID")
    phantom_buster_base_url: str = Field(
        default="https://api.phantombuster.com/api/v2",
        alias="PHANTOM_BUSTER_BASE_URL",
    )

    google_client_email: str | None = Field(default=None, alias="GOOGLE_CLIENT_EMAIL")
    google_private_key: str | None = Field(default=None, alias="GOOGLE_PRIVATE_KEY")
    google_sheet_id: str | None = Field(default=None, alias="GOOGLE_SHEET_ID")
    google_sheet_range: str = Field(default="Sheet1!A2:B2", alias="GOOGLE_SHEET_RANGE")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return []
            if stripped.startswith("["):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in stripped.split(",") if item.strip()]
        if isinstance(value, (list, tuple)):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: Any) -> Any:
        # Hosted Postgres providers hand out postgres:// URLs.
        if isinstance(value, str):
            stripped = value.strip()
            for prefix in ("postgres://", "postgresql://"):
                if stripped.startswith(prefix):
                    return "postgresql+psycopg://" + stripped[len(prefix):]
            return stripped
        return value

    @field_validator("scrape_backend", "leads_on_conflict", mode="before")
    @classmethod
    def _lowercase_choice(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def google_private_key_pem(self) -> str | None:
        if not self.google_private_key:
            return None
        return self.google_private_key.replace("\\n", "\n")


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]
