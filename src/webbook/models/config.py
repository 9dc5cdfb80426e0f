"""Application configuration with Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class WebBookConfig(BaseSettings):
    """Engine configuration with environment variable support.

    Configuration can be set via:
    1. Environment variables (prefixed with WEBBOOK_)
    2. .env file
    3. Direct instantiation

    Example:
        export WEBBOOK_TIMEOUT=60
        export WEBBOOK_LOG_LEVEL=DEBUG

        config = WebBookConfig()
        print(config.timeout)  # 60
    """

    model_config = SettingsConfigDict(
        env_prefix="WEBBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # HTTP settings
    timeout: int = Field(default=15, ge=1, le=300, description="HTTP request timeout in seconds")
    max_retries: int = Field(
        default=3, ge=1, le=10, description="Attempts per request on network errors"
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="Default User-Agent header")
    follow_redirects: bool = True
    verify_ssl: bool = True

    # Rendered fetch settings
    render_timeout: int = Field(
        default=30, ge=1, le=300, description="Rendered page load timeout in seconds"
    )
    render_wait_until: Literal["load", "domcontentloaded", "networkidle"] = Field(
        default="networkidle", description="Page load state awaited before reading content"
    )

    # Concurrency
    max_concurrent_operations: int = Field(
        default=8, ge=1, le=64, description="Operations allowed to fetch at the same time"
    )

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_file: Path | None = Field(default=None, description="Optional log file path")
