"""Application settings loaded from environment variables.

Environment Configuration:
    IMAGESTORE_ENV: Deployment environment (local | test | staging | prod)

Firebase Storage Configuration:
    FIREBASE_STORAGE_BUCKET: Bucket name (required in staging/prod)
    FIREBASE_STORAGE_BASE_URL: REST API root (defaults to the public endpoint)
    FIREBASE_AUTH_TOKEN: Bearer token sent with every request (optional)
    STORAGE_TIMEOUT_S: HTTP timeout for store and blob requests

Logging:
    LOG_JSON: Emit JSON logs (true) or console-friendly logs (false)

Note: Without FIREBASE_STORAGE_BUCKET, local/test environments fall back to
the in-memory object store.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

DEFAULT_FIREBASE_STORAGE_BASE_URL = "https://firebasestorage.googleapis.com/v0"


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - FIREBASE_STORAGE_BUCKET is required in staging and prod only
    - STORAGE_TIMEOUT_S must be positive
    """

    imagestore_env: Environment = Field(default=Environment.LOCAL, alias="IMAGESTORE_ENV")

    # Firebase Storage settings
    firebase_storage_bucket: str | None = Field(default=None, alias="FIREBASE_STORAGE_BUCKET")
    firebase_storage_base_url: str = Field(
        default=DEFAULT_FIREBASE_STORAGE_BASE_URL, alias="FIREBASE_STORAGE_BASE_URL"
    )
    firebase_auth_token: str | None = Field(default=None, alias="FIREBASE_AUTH_TOKEN")
    storage_timeout_s: float = Field(default=30.0, alias="STORAGE_TIMEOUT_S")

    log_json: bool = Field(default=True, alias="LOG_JSON")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure storage settings are usable for the environment."""
        if self.storage_timeout_s <= 0:
            raise ValueError("STORAGE_TIMEOUT_S must be > 0")

        if self.imagestore_env in (Environment.STAGING, Environment.PROD):
            if not self.firebase_storage_bucket:
                raise ValueError(
                    f"FIREBASE_STORAGE_BUCKET is required for "
                    f"IMAGESTORE_ENV={self.imagestore_env.value}"
                )

        return self

    @property
    def uses_real_store(self) -> bool:
        """Whether a Firebase bucket is configured."""
        return bool(self.firebase_storage_bucket)

    @property
    def normalized_base_url(self) -> str:
        """Return the REST API root with trailing slash stripped."""
        return self.firebase_storage_base_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
