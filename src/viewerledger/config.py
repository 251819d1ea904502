"""Application settings via pydantic-settings."""

from datetime import timedelta
from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def async_database_url(url: str) -> str:
    """Point plain postgres URLs at the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


class Settings(BaseSettings):
    """Service configuration loaded from environment variables (or a .env file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Core ---
    debug: bool = False
    log_format: str = "console"

    # --- Store ---
    database_url: str
    database_pool_size: int = 10

    # --- Upstream chat source ---
    yts_grpc_address: str

    # --- User service listener ---
    us_grpc_address: str = "0.0.0.0:50051"

    # --- Ledger policy ---
    idle_threshold_seconds: int = 300

    @field_validator("debug", mode="before")
    @classmethod
    def _debug_when_set(cls, value: Any) -> bool:  # noqa: ANN401
        """DEBUG enables verbose logging whenever it is present, whatever its value."""
        if isinstance(value, bool):
            return value
        return value is not None

    @field_validator("database_url")
    @classmethod
    def _use_async_driver(cls, value: str) -> str:
        return async_database_url(value)

    @property
    def idle_threshold(self) -> timedelta:
        return timedelta(seconds=self.idle_threshold_seconds)

    @property
    def listen_host(self) -> str:
        host, _, _ = self.us_grpc_address.rpartition(":")
        return host.strip("[]") or "0.0.0.0"

    @property
    def listen_port(self) -> int:
        _, _, port = self.us_grpc_address.rpartition(":")
        return int(port)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()  # type: ignore[call-arg]
