"""
Centralized configuration management.

All application configuration is loaded and validated here.
"""
import os
import logging
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Application settings with validation."""

    # Remote analysis service
    api_base_url: str = Field(
        default="https://datanova-backend.onrender.com",
        description="Base URL of the remote analysis service"
    )
    request_timeout_seconds: int = Field(default=120, ge=1, le=3600, description="Service call timeout in seconds")

    # File upload settings
    max_file_size_mb: int = Field(default=50, ge=1, le=1000, description="Maximum file size in MB")
    accepted_extensions: str = Field(default=".csv", description="Comma-separated list of accepted file extensions")

    # Session persistence
    storage_backend: str = Field(default="file", description="Session storage backend: 'file' or 'memory'")
    storage_dir: str = Field(default="./.datanova", description="Directory for the file storage backend")
    session_key: str = Field(default="datanova_cache", min_length=1, description="Storage key of the current dataset")

    # Chart row limits
    default_row_limit: int = Field(default=50, ge=1, description="Row limit used when a chart does not set one")
    min_row_limit: int = Field(default=10, ge=1, description="Lower bound of the chart row limit")
    max_row_limit: int = Field(default=1000, ge=1, description="Upper bound of the chart row limit")

    # CORS
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:3001",
        description="Comma-separated list of allowed CORS origins"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}, got '{v}'")
        return v.upper()

    @field_validator('storage_backend')
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        """Validate storage backend name."""
        valid_backends = ["file", "memory"]
        if v.lower() not in valid_backends:
            raise ValueError(f"STORAGE_BACKEND must be one of {valid_backends}, got '{v}'")
        return v.lower()

    @field_validator('api_base_url')
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"API_BASE_URL must be an http(s) URL, got '{v}'")
        return v.rstrip("/")

    @model_validator(mode='after')
    def validate_row_limits(self) -> "Settings":
        if self.min_row_limit > self.max_row_limit:
            raise ValueError("MIN_ROW_LIMIT must not exceed MAX_ROW_LIMIT")
        return self

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def accepted_extensions_list(self) -> List[str]:
        """Get accepted extensions as a lowercase list, each with a leading dot."""
        extensions = []
        for ext in self.accepted_extensions.split(","):
            ext = ext.strip().lower()
            if not ext:
                continue
            extensions.append(ext if ext.startswith(".") else f".{ext}")
        return extensions

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            api_base_url=os.getenv("API_BASE_URL", "https://datanova-backend.onrender.com"),
            request_timeout_seconds=int(os.getenv("REQUEST_TIMEOUT_SECONDS", "120")),
            max_file_size_mb=int(os.getenv("MAX_FILE_SIZE_MB", "50")),
            accepted_extensions=os.getenv("ACCEPTED_EXTENSIONS", ".csv"),
            storage_backend=os.getenv("STORAGE_BACKEND", "file"),
            storage_dir=os.getenv("STORAGE_DIR", "./.datanova"),
            session_key=os.getenv("SESSION_KEY", "datanova_cache"),
            default_row_limit=int(os.getenv("DEFAULT_ROW_LIMIT", "50")),
            min_row_limit=int(os.getenv("MIN_ROW_LIMIT", "10")),
            max_row_limit=int(os.getenv("MAX_ROW_LIMIT", "1000")),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:3001"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
        logger.info("Configuration loaded and validated successfully")
    return _settings


def reload_settings() -> Settings:
    """Reload settings (useful for testing)."""
    global _settings
    _settings = None
    return get_settings()
