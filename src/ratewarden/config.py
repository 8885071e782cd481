"""Configuration settings for ratewarden."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_prefix="RATEWARDEN_", env_file=".env")

    # Server
    host: str = "127.0.0.1"  # Use RATEWARDEN_HOST=0.0.0.0 for Docker
    port: int = 8080
    debug: bool = False
    forwarded_allow_ips: str = "127.0.0.1"

    # State store
    store_backend: str = "memory"  # memory | redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0
    redis_pool_size: int = 50
    redis_key_prefix: str = "ratelimit:"
    redis_state_ttl_seconds: int = 3600
    redis_lock_timeout_seconds: float = 1.0

    # Janitor
    janitor_enabled: bool = True
    janitor_interval_seconds: float = 300.0
    janitor_grace_ms: int = 60_000

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # Metrics
    metrics_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
