"""
Admin endpoint settings.

Dependencies: pydantic, pydantic_settings
System role: Credential for the cron-triggered processor endpoint
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from convoflow.configs.base import BaseSettings


class AdminSettings(BaseSettings):
    """Admin credential configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ADMIN_",
        case_sensitive=False,
        extra="ignore",
    )

    cron_token: str | None = Field(
        default=None,
        description="Shared secret for POST /jobs/process; endpoint rejects all calls when unset",
    )
