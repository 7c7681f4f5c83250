#store_engine\config.py

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Store engine configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STORE_",
        case_sensitive=False,
        extra="ignore"
    )

    # Filesystem
    stacks_root: str = "DATA/Apps"

    # Container engine
    docker_binary: str = "docker"
    docker_base_url: Optional[str] = None
    compose_timeout_seconds: int = Field(default=600, ge=1)
    manifest_timeout_seconds: int = Field(default=60, ge=1)
    stack_fetch_timeout_seconds: int = Field(default=30, ge=1)

    # Operations
    max_concurrent_operations: int = Field(default=4, ge=1)
    latest_event_cache_size: int = Field(default=1000, ge=1)
    latest_event_ttl_seconds: Optional[float] = None

    # Update checks
    local_digest_ttl_seconds: float = 30
    remote_digest_ttl_seconds: float = 5 * 60
    digest_cache_size: int = Field(default=1000, ge=1)
    update_check_interval_seconds: int = Field(default=3600, ge=60)

    # Logging
    log_level: str = "INFO"


settings = StoreSettings()
