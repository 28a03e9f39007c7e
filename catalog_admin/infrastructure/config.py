"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from enum import Enum

from pydantic_settings import BaseSettings


class FailurePolicy(str, Enum):
    """What a persistence phase does after one of its entities fails."""

    HALT = "halt"
    CONTINUE = "continue"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Backend ("rest" talks to the hosted service, "memory" keeps everything in-process)
    backend_kind: str = "rest"
    backend_url: str = "http://localhost:54321"
    backend_api_key: str = "dev-anon-key-change-in-production"
    backend_timeout: float = 10.0

    # Storage
    storage_bucket: str = "addon"

    # Submission failure handling
    variant_failure_policy: FailurePolicy = FailurePolicy.HALT
    addon_failure_policy: FailurePolicy = FailurePolicy.CONTINUE

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
