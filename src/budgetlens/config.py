"""
config.py - pydantic-settings Settings class.

Every environment variable budgetlens reads is declared here, prefixed with
BUDGETLENS_. Values can also come from a .env file in the working directory.

Usage:
    from budgetlens.config import settings
    print(settings.query_timeout_ms)
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from budgetlens.compiler.timeout import DEFAULT_QUERY_TIMEOUT_MS, validate_timeout


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BUDGETLENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------
    duckdb_path: str | None = Field(default=None)  # None means in-memory
    sql_dialect: Literal["duckdb", "postgres"] = Field(default="duckdb")
    query_timeout_ms: int = Field(default=DEFAULT_QUERY_TIMEOUT_MS)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    @field_validator("query_timeout_ms")
    @classmethod
    def check_timeout_bounds(cls, v: int) -> int:
        return validate_timeout(v).unwrap()

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Module-level singleton - import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
