"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """AI-IDE application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    secret_key: str = "change-me-in-production"
    debug: bool = False
    expose_docs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/ai-ide.db"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # CORS
    cors_origins: list[str] = Field(default_factory=list)

    # Auth
    access_token_expire_minutes: int = Field(default=60, ge=1)
    auth_self_registration: bool = True

    # HTTP hardening
    gzip_minimum_size: int = Field(default=500, ge=0)
    rate_limit_enabled: bool = True
    rate_limit_max_requests: int = Field(default=100, ge=1)
    rate_limit_window_seconds: int = Field(default=15 * 60, ge=1)
    security_headers_enabled: bool = True
    content_security_policy: str = (
        "default-src 'self'; script-src 'self' 'unsafe-inline' 'unsafe-eval'; "
        "style-src 'self' 'unsafe-inline'; img-src 'self' data: https:; "
        "connect-src 'self' ws: wss:"
    )
    log_requests: bool = True

    # Remote store (Google Drive)
    drive_api_url: str = "https://www.googleapis.com/drive/v3"
    drive_upload_url: str = "https://www.googleapis.com/upload/drive/v3"
    drive_token_url: str = "https://oauth2.googleapis.com/token"
    drive_client_id: str = ""
    drive_client_secret: str = ""
    drive_root_folder_name: str = "AI-IDE Projects"
    drive_timeout_seconds: float = Field(default=30.0, gt=0)

    # Limits
    max_file_size: int = Field(default=10 * 1024 * 1024, ge=1)
    max_projects_listed: int = Field(default=50, ge=1)

    def validate_runtime_security(self) -> None:
        """Validate security-critical production settings."""
        if self.debug:
            return

        violations: list[str] = []
        if self.secret_key == "change-me-in-production" or len(self.secret_key) < 32:
            violations.append(
                "SECRET_KEY must be overridden with a high-entropy value (>=32 chars)"
            )
        if not self.drive_client_id or not self.drive_client_secret:
            violations.append("DRIVE_CLIENT_ID and DRIVE_CLIENT_SECRET must be configured")

        if violations:
            joined = "; ".join(violations)
            raise ValueError(f"Insecure production configuration: {joined}")
