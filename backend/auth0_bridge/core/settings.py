"""
Application settings
"""
import os
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root (the backend directory)
# From auth0_bridge/core/settings.py up two levels to backend/
BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    """Process-wide settings (the Auth0 tenant configuration lives in core/auth0/config.py)."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = Field(
        default="Auth0 Login Bridge",
        description="Application name"
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("DEBUG", "APP_DEBUG"),
        description="Enable debug mode"
    )
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "ENV", "APP_ENV"),
        description="Application environment (development, staging, production)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "APP_LOG_LEVEL"),
        description="Minimum log level (DEBUG forces on when debug is enabled)"
    )
    log_dir: Optional[str] = Field(
        default="logs",
        validation_alias=AliasChoices("LOG_DIR", "APP_LOG_DIR"),
        description="Directory for rotating log files; empty disables file logging"
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("BACKEND_HOST", "HOST", "SERVER_HOST"),
        description="Backend server host"
    )
    port: int = Field(
        default=8000,
        validation_alias=AliasChoices("BACKEND_PORT", "PORT", "SERVER_PORT"),
        description="Backend server port"
    )

    # Database
    database_url_override: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "DB_URL"),
        description="Full async database URL; built from POSTGRES_* when unset"
    )
    database_echo: bool = Field(
        default=False,
        validation_alias=AliasChoices("DATABASE_ECHO", "DB_ECHO", "SQL_ECHO"),
        description="Enable SQL query logging"
    )
    database_pool_size: int = Field(
        default=10,
        validation_alias=AliasChoices("DATABASE_POOL_SIZE", "DB_POOL_SIZE"),
        description="Database connection pool size"
    )
    database_max_overflow: int = Field(
        default=20,
        validation_alias=AliasChoices("DATABASE_MAX_OVERFLOW", "DB_MAX_OVERFLOW"),
        description="Database connection pool max overflow"
    )
    database_auto_create: bool = Field(
        default=False,
        validation_alias=AliasChoices("DATABASE_AUTO_CREATE", "DB_AUTO_CREATE"),
        description="Create tables and seed default groups on startup"
    )

    @computed_field
    @property
    def database_url(self) -> str:
        """Build the asyncpg URL from POSTGRES_* env vars unless DATABASE_URL is set."""
        if self.database_url_override:
            return self.database_url_override

        postgres_host = os.getenv("POSTGRES_HOST", "localhost")
        postgres_user = os.getenv("POSTGRES_USER", "postgres")
        postgres_password = os.getenv("POSTGRES_PASSWORD", "postgres")
        postgres_db = os.getenv("POSTGRES_DB", "auth0_bridge")
        postgres_port = os.getenv("POSTGRES_PORT", "5432")

        return (
            f"postgresql+asyncpg://{postgres_user}:{postgres_password}"
            f"@{postgres_host}:{postgres_port}/{postgres_db}"
        )

    # Auth
    secret_key: str = Field(
        ...,  # required, no default
        validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET_KEY", "AUTH_SECRET_KEY"),
        description="JWT secret key (REQUIRED - must be set in environment)"
    )
    algorithm: str = Field(
        default="HS256",
        validation_alias=AliasChoices("JWT_ALGORITHM", "AUTH_ALGORITHM"),
        description="JWT signing algorithm"
    )
    remember_days: int = Field(
        default=30,
        validation_alias=AliasChoices("REMEMBER_DAYS", "AUTH_REMEMBER_DAYS"),
        description="Lifetime of the persistent login cookie in days"
    )

    # Session middleware (pending login state)
    session_secret_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SESSION_SECRET_KEY", "SESSION_SECRET"),
        description="Signing key for the session cookie; falls back to SECRET_KEY"
    )
    session_cookie_name: str = Field(
        default="auth0_bridge_session",
        validation_alias=AliasChoices("SESSION_COOKIE_NAME", "SESSION_COOKIE"),
        description="Session cookie name"
    )

    # Cookie
    cookie_name: str = Field(
        default="auth_token",
        validation_alias=AliasChoices("COOKIE_NAME", "AUTH_COOKIE_NAME"),
        description="Authentication cookie name"
    )
    cookie_domain: Optional[str] = Field(
        default=None,  # set to ".example.com" in production
        validation_alias=AliasChoices("COOKIE_DOMAIN", "AUTH_COOKIE_DOMAIN"),
        description="Cookie domain (e.g., '.example.com' for production)"
    )
    cookie_secure: bool = Field(
        default=False,
        validation_alias=AliasChoices("COOKIE_SECURE", "AUTH_COOKIE_SECURE"),
        description="Cookie Secure flag (auto-enabled in production)"
    )
    cookie_samesite: str = Field(
        default="lax",  # "lax" | "strict" | "none"
        validation_alias=AliasChoices("COOKIE_SAMESITE", "AUTH_COOKIE_SAMESITE"),
        description="Cookie SameSite attribute (lax, strict, none)"
    )

    @computed_field
    @property
    def cookie_secure_effective(self) -> bool:
        """Secure cookies are always on in production."""
        if self.environment == "production":
            return True
        return self.cookie_secure

    # Proxy
    trust_proxy_headers: bool = Field(
        default=True,
        validation_alias=AliasChoices("TRUST_PROXY_HEADERS", "FORWARDED_ALLOW"),
        description="Honor X-Forwarded-Proto/Host/For when deriving URLs and client IPs"
    )

    # Auth0
    auth0_config_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AUTH0_CONFIG_PATH", "AUTH0_CONFIG_FILE"),
        description="YAML file overlaying AUTH0_* settings (default: backend/config/auth0.yaml)"
    )
    auth0_http_timeout: float = Field(
        default=10.0,
        validation_alias=AliasChoices("AUTH0_HTTP_TIMEOUT", "AUTH0_TIMEOUT"),
        description="Timeout in seconds for outbound calls to the Auth0 tenant"
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
