"""Application settings loaded from environment."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Storefront Admin"
    app_env: str = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    secret_key: str = Field(default="change-me", min_length=8)
    jwt_algorithm: str = "HS256"

    backend_url: str | None = None
    document_store_backend: Literal["memory", "http"] = "memory"
    document_store_timeout_seconds: float = 15.0
    admin_users_document: str = "adminUsers"

    kv_backend: Literal["memory", "redis"] = "memory"
    redis_url: str | None = None
    kv_redis_namespace: str = "storefront_admin"
    allow_in_memory_backends_in_production: bool = False

    session_key_prefix: str = "techAppLoggedInAdmin"
    audit_log_key: str = "techAppAuditLogs"
    audit_log_max_entries: int = Field(default=500, ge=1)

    inactivity_timeout_seconds: float = Field(default=15 * 60, gt=0)
    password_min_length: int = 6
    username_min_length: int = 3
    password_bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    @field_validator("document_store_backend", "kv_backend", mode="before")
    @classmethod
    def normalize_backend(cls, value: object) -> object:
        """Normalize backend token for case-insensitive env parsing."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("backend_url", mode="before")
    @classmethod
    def strip_backend_url(cls, value: object) -> object:
        """Drop trailing slashes so paths join cleanly."""
        if isinstance(value, str):
            value = value.strip().rstrip("/")
            return value or None
        return value

    @model_validator(mode="after")
    def validate_security_for_environment(self) -> "Settings":
        """Block unsafe defaults in production-like environments."""
        env_name = self.app_env.strip().lower()

        if self.kv_backend == "redis" and not self.redis_url:
            raise ValueError("REDIS_URL must be set when KV_BACKEND=redis")
        if self.document_store_backend == "http" and not self.backend_url:
            raise ValueError("BACKEND_URL must be set when DOCUMENT_STORE_BACKEND=http")

        if env_name not in {"production", "prod"}:
            return self

        secret_value = self.secret_key.strip().lower()
        if secret_value.startswith("change-me"):
            raise ValueError(
                "SECRET_KEY must not use placeholder values (change-me*) in production environment",
            )

        uses_memory = self.kv_backend == "memory" or self.document_store_backend == "memory"
        if uses_memory and not self.allow_in_memory_backends_in_production:
            raise ValueError(
                "ALLOW_IN_MEMORY_BACKENDS_IN_PRODUCTION must be true in production "
                "when sessions, audit logs or admin users are kept in process memory",
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
