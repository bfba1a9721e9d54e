"""Application settings loaded from environment variables.

Environment Configuration:
    MEDIASHELF_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: SQLAlchemy connection string (required)
    MEDIASHELF_INTERNAL_SECRET: Gateway shared secret (required in staging/prod)

Logging Configuration:
    LOG_JSON: JSON log lines (default) or the console renderer
    LOG_LEVEL: Root log level

Listing Configuration:
    DEFAULT_PAGE_SIZE: Page size used when the client omits pageSize
    MAX_PAGE_SIZE: Upper bound accepted for pageSize (at most 100)

Note: Identity is asserted by the gateway in front of this service.
The service never sees credentials, only the forwarded user id.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Hard ceiling for pageSize; MAX_PAGE_SIZE may only lower it
PAGE_SIZE_LIMIT = 100


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - MEDIASHELF_INTERNAL_SECRET is required in staging and prod only
    - DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE
    """

    mediashelf_env: Environment = Field(default=Environment.LOCAL, alias="MEDIASHELF_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    mediashelf_internal_secret: str | None = Field(
        default=None, alias="MEDIASHELF_INTERNAL_SECRET"
    )

    log_json: bool = Field(default=True, alias="LOG_JSON")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    db_pool_timeout_s: int = Field(default=30, ge=1, alias="DB_POOL_TIMEOUT_S")

    # Listing
    default_page_size: int = Field(
        default=20, ge=1, le=PAGE_SIZE_LIMIT, alias="DEFAULT_PAGE_SIZE"
    )
    max_page_size: int = Field(
        default=PAGE_SIZE_LIMIT, ge=1, le=PAGE_SIZE_LIMIT, alias="MAX_PAGE_SIZE"
    )

    # Name of the collection auto-provisioned for media created without a target
    default_collection_name: str = Field(
        default="Default", min_length=1, max_length=200, alias="DEFAULT_COLLECTION_NAME"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure environment-dependent settings are consistent."""
        if self.mediashelf_env in (Environment.STAGING, Environment.PROD):
            if not self.mediashelf_internal_secret:
                raise ValueError(
                    "MEDIASHELF_INTERNAL_SECRET is required for "
                    f"MEDIASHELF_ENV={self.mediashelf_env.value}"
                )

        if self.default_page_size > self.max_page_size:
            raise ValueError(
                f"DEFAULT_PAGE_SIZE ({self.default_page_size}) must not exceed "
                f"MAX_PAGE_SIZE ({self.max_page_size})"
            )

        return self

    @property
    def requires_internal_header(self) -> bool:
        """Whether requests must include the internal secret header."""
        return self.mediashelf_env in (Environment.STAGING, Environment.PROD)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
