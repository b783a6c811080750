"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
See .env.example for required variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ==========================================================================
    # Security
    # ==========================================================================
    api_key: SecretStr = Field(description="Shared secret required on every API call")

    # ==========================================================================
    # HTTP Server
    # ==========================================================================
    host: str = Field(default="0.0.0.0", description="Interface to bind")
    port: int = Field(default=3000, description="Port to listen on")

    # ==========================================================================
    # Application
    # ==========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="production", description="Deployment environment"
    )

    # ==========================================================================
    # WhatsApp Web Client
    # ==========================================================================
    client_id: str = Field(
        default="whatsapp-service",
        description="Session identifier, used to name the browser profile directory",
    )
    session_dir: Path = Field(
        default=Path(".wwebjs_auth"),
        description="Directory holding persisted browser sessions",
    )
    whatsapp_web_url: str = Field(
        default="https://web.whatsapp.com",
        description="WhatsApp Web entry point",
    )
    browser_executable_path: str | None = Field(
        default=None,
        description="Chrome/Chromium binary. Defaults to Playwright's bundled Chromium",
    )
    proxy_url: str | None = Field(
        default=None,
        description="Proxy server passed to Chromium (--proxy-server)",
    )
    qr_image_path: Path = Field(
        default=Path(".wwebjs_auth/qr.png"),
        description="Where the pairing QR code is written for the operator",
    )
    monitor_interval_seconds: float = Field(
        default=2.0,
        description="Polling interval of the WhatsApp Web page monitor",
    )

    # ==========================================================================
    # Messaging
    # ==========================================================================
    default_typing_duration_ms: int = Field(
        default=2000,
        description="Typing indicator hold time when the caller omits typing_duration",
    )
    max_upload_bytes: int = Field(
        default=50 * 1024 * 1024,
        description="Maximum size of a multipart media upload",
    )
    media_download_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for the raw media download fallback",
    )

    @field_validator("api_key")
    @classmethod
    def _api_key_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("API_KEY environment variable is required")
        return value

    # ==========================================================================
    # Derived Properties
    # ==========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def headless(self) -> bool:
        """The browser window is only shown in development."""
        return not self.is_development


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Use dependency injection in FastAPI:
        settings: Settings = Depends(get_settings)
    """
    return Settings()  # type: ignore[call-arg]  # loads from env
