"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="crmhub", alias="APP_NAME")
    app_env: str = Field(default="development", alias="APP_ENV")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # API
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # Database
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="crmhub", alias="POSTGRES_DB")
    postgres_user: str = Field(default="crmhub", alias="POSTGRES_USER")
    postgres_password: str = Field(default="crmhub", alias="POSTGRES_PASSWORD")
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    db_pool_size: int = Field(default=5, ge=1, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, ge=0, alias="DB_MAX_OVERFLOW")

    @property
    def async_database_url(self) -> str:
        """Construct async database URL."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_db: int = Field(default=0, alias="REDIS_DB")
    redis_password: Optional[str] = Field(default=None, alias="REDIS_PASSWORD")
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")

    @property
    def redis_dsn(self) -> str:
        """Construct Redis DSN."""
        if self.redis_url:
            return self.redis_url
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Celery
    celery_broker_url: Optional[str] = Field(default=None, alias="CELERY_BROKER_URL")
    celery_result_backend: Optional[str] = Field(default=None, alias="CELERY_RESULT_BACKEND")
    celery_webhook_queue: str = Field(default="webhooks", alias="CELERY_WEBHOOK_QUEUE")

    @property
    def broker_url(self) -> str:
        """Get Celery broker URL."""
        return self.celery_broker_url or self.redis_dsn

    @property
    def result_backend(self) -> str:
        """Get Celery result backend URL."""
        return self.celery_result_backend or self.redis_dsn

    # Auth provider tokens (verified only, never issued here)
    auth_jwt_secret: str = Field(default="your-jwt-secret-change-in-production", alias="AUTH_JWT_SECRET")
    auth_jwt_algorithm: str = Field(default="HS256", alias="AUTH_JWT_ALGORITHM")
    auth_jwt_audience: Optional[str] = Field(default="authenticated", alias="AUTH_JWT_AUDIENCE")

    # Outbound webhooks
    webhook_proxy_base_url: str = Field(default="http://localhost:5173", alias="WEBHOOK_PROXY_BASE_URL")
    webhook_routing_prefix: str = Field(default="/api/n8n", alias="WEBHOOK_ROUTING_PREFIX")
    webhook_timeout: float = Field(default=10.0, alias="WEBHOOK_TIMEOUT")
    webhook_max_concurrency: int = Field(default=10, ge=1, alias="WEBHOOK_MAX_CONCURRENCY")
    webhook_response_body_limit: int = Field(default=1000, alias="WEBHOOK_RESPONSE_BODY_LIMIT")
    webhook_cross_user_fanout: bool = Field(default=False, alias="WEBHOOK_CROSS_USER_FANOUT")
    webhook_dispatch_backend: Literal["background", "celery"] = Field(
        default="background", alias="WEBHOOK_DISPATCH_BACKEND"
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Split comma separated CORS origins."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
