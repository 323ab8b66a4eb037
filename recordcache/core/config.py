"""Cache layer configuration (settings and environment).

Single source of truth for connection settings and cache defaults. Uses
pydantic-settings with .env support. Engines never read these values
directly; factories pass ttl/op_timeout into each engine's constructor.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment and .env.

    All settings have defaults; validate_positive_durations rejects TTL and
    timeout values that would make cache entries expire immediately.
    """

    # App
    app_name: str = "recordcache"
    debug: bool = False

    # Redis (cache tier)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_socket_timeout: float = 5.0
    redis_max_connections: int = 10

    # Cache behaviour
    cache_key_prefix: str = "cache"
    cache_ttl_seconds: int = 3600
    cache_op_timeout_seconds: float = 30.0

    # SQL backend (SqlAlchemyStorage)
    database_url: str = ""
    database_echo: bool = False

    # Firestore backend (FirestoreStorage): use key (env) or path (file).
    firestore_project_id: str | None = None
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_positive_durations(self) -> "Settings":
        """Reject non-positive cache TTL and operation timeout."""
        if self.cache_ttl_seconds <= 0:
            raise ValueError(
                f"cache_ttl_seconds must be positive, got: {self.cache_ttl_seconds}"
            )
        if self.cache_op_timeout_seconds <= 0:
            raise ValueError(
                "cache_op_timeout_seconds must be positive, got: "
                f"{self.cache_op_timeout_seconds}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    In tests, call get_settings.cache_clear() before overriding env vars so
    the next get_settings() uses the new values.
    """
    return Settings()
