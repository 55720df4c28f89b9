"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI and the CLI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from convoflow.configs.admin import AdminSettings
from convoflow.configs.ai import EmbeddingSettings, TaggingSettings
from convoflow.configs.base import BaseSettings
from convoflow.configs.database import DatabaseSettings
from convoflow.configs.pipeline import PipelineSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    tagging: TaggingSettings = Field(default_factory=TaggingSettings)
    admin: AdminSettings = Field(default_factory=AdminSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Environment variables are read once; call get_settings.cache_clear()
    in tests that change the environment.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
