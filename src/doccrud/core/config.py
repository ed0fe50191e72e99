"""Configuration management for doccrud.

Settings are loaded with Pydantic Settings from environment variables and
.env files. They are read once and treated as immutable for the lifetime of
the process.
"""

import re
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    """Process-wide configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DOCCRUD_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "doccrud"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"

    # Document store
    database_url: str = "sqlite+aiosqlite:///./data/doccrud.db"
    db_echo: bool = False
    db_sqlite_busy_timeout: int = 5000  # milliseconds
    collection_table_prefix: str = Field(
        default="col_",
        description="Prefix of the physical table backing each collection",
    )
    index_prefix: str = Field(
        default="ix_",
        description="Prefix of physical index names (SQLite index names are global)",
    )

    # Validation gate defaults
    validation_convert: bool = True
    validation_strip_unknown: bool = True

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @field_validator("collection_table_prefix", "index_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Prefixes end up inside quoted identifiers and LIKE patterns."""
        if not v or not IDENTIFIER_PATTERN.match(v):
            raise ValueError(f"Prefix must be a non-empty identifier, got {v!r}")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def is_memory_database(self) -> bool:
        """Check whether the database URL points at an in-memory SQLite database."""
        return self.database_url.endswith(":memory:") or self.database_url.endswith("://")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached settings instance.
    """
    return Settings()
