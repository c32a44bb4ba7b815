"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_config_dir() -> Path:
    """Find the directory holding the YAML lookup tables.

    The tables ship inside the package: config.py -> core/ -> sheetsink/config.
    """
    return Path(__file__).resolve().parent.parent / "config"


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Prefix: SHEETSINK_
    """

    model_config = SettingsConfigDict(
        env_prefix="SHEETSINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sink database (SQLAlchemy)
    database_url: str = Field(
        default="sqlite:///./sheetsink.db",
        description="SQLAlchemy URL of the destination database",
    )
    pool_size: int = Field(default=10, description="Sink connection pool size")
    max_overflow: int = Field(default=0, description="Connections allowed beyond pool_size")
    pool_timeout: float = Field(default=30.0, description="Seconds to wait for a pooled connection")
    sqlite_timeout: float = Field(default=30.0, description="SQLite busy timeout in seconds")
    echo_sql: bool = Field(default=False)

    # Ingestion
    batch_size: int = Field(default=1000, ge=1, description="Rows per write call")
    sample_size: int = Field(default=5, ge=1, description="Rows sampled for type inference")
    header_scan_rows: int = Field(
        default=15,
        ge=1,
        description="Spreadsheet rows scanned when looking for the header row",
    )
    preview_rows: int = Field(default=5, ge=0, description="Rows returned by analyze")
    duplicate_policy: str = Field(
        default="ignore",
        description="What to do with rows whose key already exists: ignore, update or error",
    )
    write_timeout_seconds: float = Field(
        default=600.0,
        ge=0,
        description="Seconds a single batch write may take (0 = no limit)",
    )

    # Files
    upload_dir: Path = Field(
        default=Path("./uploads"),
        description="Where the API materializes uploaded files before ingesting them",
    )
    config_path: Path = Field(
        default_factory=_find_config_dir,
        description="Path to configuration files (date formats)",
    )

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=6002)
    upload_history_size: int = Field(
        default=1000, ge=1, description="Finished uploads the API keeps for polling"
    )
    upload_history_seconds: float = Field(
        default=3600.0, ge=0, description="Seconds a finished upload stays pollable"
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")  # 'json' or 'console'


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
