"""
Job pipeline settings.

Tunables for the queue processor, the import step machine and the
chunker. Defaults match production behaviour; override via PIPELINE_*.

Dependencies: pydantic, pydantic_settings
System role: Queue and ingestion configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from convoflow.configs.base import BaseSettings


class PipelineSettings(BaseSettings):
    """Queue processor and ingestion pipeline configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PIPELINE_",
        case_sensitive=False,
        extra="ignore",
    )

    chunk_size: int = Field(default=3000, gt=0, description="Target chunk length in characters")
    chunk_overlap: int = Field(default=200, ge=0, description="Characters shared by consecutive chunks")

    embedding_batch_size: int = Field(default=20, gt=0, description="Chunks per embedding request")
    max_chunks_per_run: int = Field(
        default=300,
        gt=0,
        description="Chunks embedded per embed_chunks pass before yielding",
    )
    max_retries_per_batch: int = Field(
        default=5,
        gt=0,
        description="Attempts per embedding batch on rate-limit responses",
    )
    retry_base_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="First backoff delay; doubles per attempt",
    )

    lock_ttl_seconds: int = Field(
        default=300,
        gt=0,
        description="Claimed jobs older than this are treated as abandoned",
    )
    steps_per_pass: int = Field(default=1, gt=0, description="Steps run per claim")
    default_batch_limit: int = Field(default=10, gt=0, description="Jobs per processor run")
    max_batch_limit: int = Field(default=50, gt=0, description="Upper bound accepted from callers")

    poll_job_limit: int = Field(default=5, gt=0, description="Import jobs returned by the poll endpoint")
