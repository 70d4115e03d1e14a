"""
Configuration management for SQL Gateway.

This module provides environment-based configuration using Pydantic BaseSettings,
so the same code can target a local SQLite file in development and a MySQL or
PostgreSQL server in production without code changes.

Environment variables use the SQLGW_ prefix, e.g. SQLGW_DRIVER=pgsql or
SQLGW_HOST=db.internal. LOG_LEVEL is read without a prefix.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE_OVERRIDE = os.getenv("SQLGW_ENV_FILE")
SETTINGS_ENV_FILE = (
    Path(ENV_FILE_OVERRIDE).expanduser() if ENV_FILE_OVERRIDE else Path(".env")
)

_DRIVER_ALIASES = ("mysql", "sqlite", "pgsql", "postgres", "postgresql")


class Settings(BaseSettings):
    """
    Database connection and logging settings.

    Connection fields mirror the Server builder: driver, host, port, name,
    username, password and persistent. For SQLite, ``name`` is the database
    file path (or ``:memory:``).
    """

    driver: str = Field(default="sqlite", description="Database driver kind")
    host: str = Field(default="localhost", description="Database host")
    port: Optional[int] = Field(default=None, description="Database port")
    name: Optional[str] = Field(
        default=None, description="Database name, or file path for SQLite"
    )
    username: Optional[str] = Field(default=None, description="Database user")
    password: Optional[str] = Field(default=None, description="Database password")
    persistent: bool = Field(
        default=False, description="Keep a reusable connection pool"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "SQLGW_LOG_LEVEL"),
        description="Logging level (uppercase)",
    )
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_dir: str = Field(default="logs", description="Directory for log files")

    model_config = SettingsConfigDict(
        env_prefix="SQLGW_",
        env_file=SETTINGS_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("driver")
    @classmethod
    def validate_driver(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in _DRIVER_ALIASES:
            raise ValueError(
                f"Unknown database driver '{value}'. "
                f"Supported drivers: {', '.join(_DRIVER_ALIASES)}"
            )
        return normalized

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Call ``get_settings.cache_clear()`` after changing environment variables
    (tests do this through monkeypatch).
    """
    return Settings()
