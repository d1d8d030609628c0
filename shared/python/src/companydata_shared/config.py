"""
config.py — pydantic-settings Settings class.

All environment variables for companydata are declared here.
Both the pipeline and API import `settings` from this module.

Usage:
    from companydata_shared.config import settings
    print(settings.database_path)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Store (DuckDB)
    # -------------------------------------------------------------------------
    database_path: str = Field(default="./data/companies_data.duckdb")
    # How long an import waits for another import (or a file lock) before giving up
    db_busy_timeout_ms: int = Field(default=5000, ge=0)

    # -------------------------------------------------------------------------
    # Import pipeline
    # -------------------------------------------------------------------------
    companies_house_batch_size: int = Field(default=5000, ge=1)
    code_point_batch_size: int = Field(default=5000, ge=1)
    # False: unparsable integer columns decode to 0 instead of failing the row
    strict_integers: bool = Field(default=True)
    code_point_member_prefix: str = Field(default="Data/CSV/")

    download_dir: str | None = Field(default=None)
    download_timeout_s: float = Field(default=300.0, gt=0)
    download_max_attempts: int = Field(default=3, ge=1)

    # -------------------------------------------------------------------------
    # API server
    # -------------------------------------------------------------------------
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    cors_origins: str = Field(default="*")
    # Companies House data is refreshed monthly
    cache_max_age_s: int = Field(default=28 * 24 * 3600, ge=0)
    max_bbox_span_m: float = Field(default=5000.0, gt=0)
    search_fetch_size: int = Field(default=1000, ge=1)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("code_point_member_prefix", mode="before")
    @classmethod
    def strip_leading_slash(cls, v: str) -> str:
        return v.lstrip("/") if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton — import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
