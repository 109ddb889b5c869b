"""Application configuration using pydantic-settings.

Provides type-safe, validated configuration from environment variables
with sensible defaults for development.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ========== Database ==========
    database_url: str = Field(
        default="sqlite+aiosqlite:///./gestor.db",
        description="Async SQLAlchemy connection string",
    )
    db_pool_size: int = Field(default=5, ge=1, le=20)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_timeout: int = Field(default=30, ge=5, le=120)
    db_echo: bool = Field(default=False, description="Echo SQL queries")

    # ========== Cache ==========
    upstash_redis_rest_url: str = Field(default="", description="Upstash Redis REST URL")
    upstash_redis_rest_token: str = Field(default="", description="Upstash Redis REST Token")
    cache_max_entries: int = Field(default=1000, ge=1, description="In-process cache capacity")
    cache_cleanup_interval_seconds: int = Field(default=60, ge=1)

    # ========== Metrics ==========
    metrics_buffer_size: int = Field(default=100, ge=1)
    metrics_slow_threshold_ms: float = Field(default=5000.0, ge=0)
    metrics_flush_interval_seconds: int = Field(default=60, ge=1)
    metrics_retention_days: int = Field(default=30, ge=1)
    health_check_cron: str = Field(default="*/15 * * * *", description="Crontab for the health check")
    metrics_cleanup_cron: str = Field(default="0 2 * * *", description="Crontab for metrics cleanup")

    # ========== Identity ==========
    jwt_secret_key: str = Field(
        default="CHANGE-THIS-IN-PRODUCTION-USE-SECRETS-TOKEN",
        min_length=32,
        description="Identity token signing secret",
    )
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"

    # ========== Administration ==========
    super_admin_uid: str = Field(default="", description="UID with admin rights")
    admin_emails_str: str = Field(
        default="",
        alias="ADMIN_EMAILS",
        description="Comma-separated emails allowed to become super admin",
    )

    # ========== LLM Providers ==========
    gemini_api_key: str = Field(default="", description="Google Gemini API Key")
    openai_api_key: str = Field(default="", description="OpenAI API Key")
    default_llm_provider: Literal["gemini", "openai"] = "gemini"
    default_llm_model: str = "gemini-2.5-flash"

    # ========== Backups ==========
    backup_retention_days: int = Field(default=30, ge=1)
    backup_collections_str: str = Field(
        default="users,metrics,performance,logs",
        alias="BACKUP_COLLECTIONS",
    )

    # ========== CORS ==========
    cors_origins_str: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        alias="CORS_ORIGINS",
        description="Comma-separated CORS origins",
    )

    # ========== Application ==========
    app_name: str = "Gestor Confeitaria"
    app_version: str = "2.0.0"
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # ========== Computed Properties ==========
    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @computed_field
    @property
    def admin_emails(self) -> list[str]:
        """Parse admin e-mail allow-list."""
        return [email.strip().lower() for email in self.admin_emails_str.split(",") if email.strip()]

    @computed_field
    @property
    def backup_collections(self) -> list[str]:
        """Collections recorded by backup jobs."""
        return [name.strip() for name in self.backup_collections_str.split(",") if name.strip()]

    @computed_field
    @property
    def redis_available(self) -> bool:
        """Check if Redis credentials are configured."""
        return bool(self.upstash_redis_rest_url and self.upstash_redis_rest_token)

    @computed_field
    @property
    def processed_database_url(self) -> str:
        """Convert database URL for asyncpg compatibility."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        replacements = [
            ("sslmode=require", "ssl=require"),
            ("sslmode=prefer", "ssl=prefer"),
            ("sslmode=verify-full", "ssl=verify-full"),
        ]
        for old, new in replacements:
            url = url.replace(old, new)
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
