"""
AI provider settings.

Gemini embedding and tagging model configuration. The Google API key is
read by langchain_google_genai from GOOGLE_API_KEY.

Dependencies: pydantic, pydantic_settings
System role: External AI provider configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from convoflow.configs.base import BaseSettings


class EmbeddingSettings(BaseSettings):
    """Embedding provider configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EMBEDDING_",
        case_sensitive=False,
        extra="ignore",
    )

    model: str = Field(default="models/gemini-embedding-001", description="Embedding model ID")
    dimension: int = Field(default=1536, gt=0, description="Fixed output dimensionality")


class TaggingSettings(BaseSettings):
    """LLM tagging configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TAGGING_",
        case_sensitive=False,
        extra="ignore",
    )

    model: str = Field(default="gemini-2.5-flash", description="Chat model used for tag extraction")
    temperature: float = Field(default=0.3, ge=0, le=2)
    max_chars: int = Field(default=8000, gt=0, description="Conversation text sent to the model")
    enabled: bool = Field(default=True, description="Skip tagging entirely when False")
