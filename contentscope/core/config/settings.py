"""Application settings loaded from the environment."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from contentscope.core.config.enums import Environment


class Settings(BaseSettings):
    """Settings for the content access layer.

    Values are read from environment variables (and an optional ``.env`` file).
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENVIRONMENT: Environment = Environment.LOCAL

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    ANALYTICS_ENABLED: bool = False
    POSTHOG_API_KEY: Optional[str] = None
    POSTHOG_HOST: str = "https://app.posthog.com"
    FIRST_ENTRY_EVENT: str = "didCreateFirstContentTypeEntry"

    DEFAULT_PAGE_SIZE: int = Field(10, ge=1)
    MAX_PAGE_SIZE: int = Field(100, ge=1)

    POPULATE_TRACE_ENABLED: bool = False

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        """Accept lowercase level names from the environment."""
        return value.upper()

    @property
    def is_local(self) -> bool:
        """Whether the process runs on a developer machine."""
        return self.ENVIRONMENT == Environment.LOCAL
