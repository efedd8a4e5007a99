"""
Centralized configuration using Pydantic BaseSettings.
All integration keys are optional to prevent application startup failure.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # BaaS (Supabase) configuration
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_service_role_key: Optional[str] = Field(default=None, alias="SUPABASE_SERVICE_ROLE_KEY")
    supabase_anon_key: Optional[str] = Field(default=None, alias="SUPABASE_ANON_KEY")

    # Mercado Pago configuration
    mp_access_token: Optional[str] = Field(default=None, alias="MP_ACCESS_TOKEN")
    mp_webhook_secret: Optional[str] = Field(default=None, alias="MP_WEBHOOK_SECRET")
    mp_statement_descriptor: str = Field(default="IPTV REVENDA", alias="MP_STATEMENT_DESCRIPTOR")
    mp_preference_ttl_hours: int = Field(default=24, alias="MP_PREFERENCE_TTL_HOURS")

    # Public URLs
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")
    backend_url: str = Field(default="http://localhost:3001", alias="BACKEND_URL")
    cors_origins: List[str] = Field(
        default=["https://don-app.com", "http://localhost:5173", "http://localhost:8080"],
        alias="CORS_ORIGINS",
    )

    # Email relay (SMTP)
    smtp_host: Optional[str] = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: Optional[str] = Field(default=None, alias="SMTP_USER")
    smtp_password: Optional[str] = Field(default=None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")
    email_from_name: str = Field(default="IPTV Revenda", alias="EMAIL_FROM_NAME")

    # Expiration warnings
    expiration_warning_days: int = Field(default=7, alias="EXPIRATION_WARNING_DAYS")
    expiration_job_enabled: bool = Field(default=False, alias="EXPIRATION_JOB_ENABLED")
    expiration_job_interval_hours: float = Field(default=24.0, alias="EXPIRATION_JOB_INTERVAL_HOURS")

    # Runtime
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: Optional[str] = Field(default=None, alias="ENV")


# Instantiate settings object
settings = Settings()

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.env and settings.env.lower() == "production")
