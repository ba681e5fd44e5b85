"""Configuration module for contentscope.

Usage:
    from contentscope.core.config import settings, Environment

    if settings.ENVIRONMENT == Environment.PRD:
        ...
"""

from contentscope.core.config.enums import Environment
from contentscope.core.config.settings import Settings

__all__ = [
    "Environment",
    "Settings",
    "settings",
]

# Singleton settings instance
settings = Settings()
