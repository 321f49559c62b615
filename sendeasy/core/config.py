"""
Application configuration using Pydantic Settings.

Configuration values can be set via environment variables or .env file.
"""

import json
from pathlib import Path
from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "SendEasy"
    version: str = "1.0.0"
    debug: bool = False
    dev_mode: bool = False
    host: str = "0.0.0.0"
    port: int = 8600
    # Also append log records to this file when set
    log_file: Optional[str] = None

    # Database
    database_url: str = "sqlite:///./data/sendeasy.db"

    # Session and transfer lifecycle
    password_policy: Literal["random", "deterministic"] = "random"
    password_length: int = 6
    session_ttl_hours: int = Field(default=24, ge=1)
    transfer_ttl_hours: int = Field(default=24, ge=1)
    # How long an expired block stays visible before it is purged (0 = purge on expiry)
    expired_grace_hours: int = Field(default=0, ge=0)
    # IANA zone for "end of next calendar day"; None uses the server's local zone
    timezone: Optional[str] = None

    # File storage
    storage_backend: Literal["local", "s3"] = "local"
    upload_dir: str = "./uploads"
    upload_url_prefix: str = "/api/files/download"
    max_upload_mb: int = Field(default=100, ge=1)
    s3_bucket: Optional[str] = None
    s3_prefix: str = "uploads/"
    s3_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None

    # Background sweeper (0 disables the in-process loop)
    sweep_interval_minutes: int = Field(default=60, ge=0)

    # CORS; a JSON list or a comma-separated string
    cors_origins: Any = ["http://localhost:8600", "http://localhost:5173"]

    # Rate limiting configuration
    rate_limit_validate_endpoints: str = "10/minute"
    rate_limit_write_endpoints: str = "30/minute"
    rate_limit_read_endpoints: str = "100/minute"

    # Optional Redis URL for distributed rate limiting
    # When set, rate limits will be shared across multiple instances
    redis_url: Optional[str] = None

    @staticmethod
    def parse_cors_origins(value: Any) -> List[str]:
        """Parse CORS origins from a JSON list or a comma-separated string."""
        if isinstance(value, (list, tuple)):
            return [str(origin) for origin in value]
        if not isinstance(value, str):
            return []
        value = value.strip()
        if value.startswith("["):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return [str(origin) for origin in parsed]
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _validate_cors_origins(cls, value: Any) -> List[str]:
        return cls.parse_cors_origins(value)

    @field_validator("password_length")
    @classmethod
    def _validate_password_length(cls, value: int) -> int:
        if value != 6:
            raise ValueError("password_length must be 6")
        return value

    @model_validator(mode="after")
    def _check_storage_settings(self) -> "Settings":
        if self.storage_backend == "s3" and not self.s3_bucket:
            raise ValueError("s3_bucket is required when storage_backend is 's3'")
        return self

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def ensure_directories(self) -> None:
        """Create the upload folder and the SQLite data folder if missing."""
        if self.storage_backend == "local":
            Path(self.upload_dir).mkdir(parents=True, exist_ok=True)
        if self.database_url.startswith("sqlite:///") and ":memory:" not in self.database_url:
            db_path = Path(self.database_url[len("sqlite:///"):])
            db_path.parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
settings.ensure_directories()
