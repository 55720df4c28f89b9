"""
Configuration management module.

Provides centralized, type-safe configuration using Pydantic Settings.
All config modules support environment variable mapping with validation.
"""

from convoflow.configs.admin import AdminSettings
from convoflow.configs.ai import EmbeddingSettings, TaggingSettings
from convoflow.configs.database import DatabaseSettings
from convoflow.configs.pipeline import PipelineSettings
from convoflow.configs.settings import Settings, get_settings

__all__ = [
    "AdminSettings",
    "DatabaseSettings",
    "EmbeddingSettings",
    "PipelineSettings",
    "Settings",
    "TaggingSettings",
    "get_settings",
]
