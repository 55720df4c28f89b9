"""
Shared settings base.

Every settings class in convoflow inherits from here so that .env loading,
case handling and the common runtime knobs stay consistent.

Dependencies: pydantic_settings
System role: Foundation for all configuration classes
"""

from pydantic import Field
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict


class BaseSettings(PydanticBaseSettings):
    """Common runtime settings shared by every config section."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description="Deployment environment (development, staging, production)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(
        default="INFO",
        description="Root log level applied by configure_logging()",
    )
    default_timezone: str = Field(
        default="America/Denver",
        description="IANA zone used to resolve coarse thinking-time windows",
    )
