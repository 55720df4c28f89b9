"""
Queue processor assembly.

Builds the QueueProcessor with both job handlers from settings. Shared
by the HTTP trigger and the convoflow-process console command.

Dependencies: convoflow.boundary, convoflow.core, convoflow.configs
System role: Composition root for job processing
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from convoflow.boundary.ai import (
    DisabledTaggingClient,
    EmbeddingClient,
    GeminiEmbeddingClient,
    GeminiTaggingClient,
    TaggingClient,
)
from convoflow.boundary.db.connection import get_async_session_factory
from convoflow.boundary.db.models.job_model import JobType
from convoflow.configs import Settings, get_settings
from convoflow.core.import_pipeline import ImportJobHandler
from convoflow.core.queue import QueueProcessor
from convoflow.core.structure import RecomputeJobHandler, StructureDispatcher


def build_embedding_client(settings: Settings) -> EmbeddingClient:
    return GeminiEmbeddingClient(
        model=settings.embedding.model,
        dimension=settings.embedding.dimension,
    )


def build_tagging_client(settings: Settings) -> TaggingClient:
    if not settings.tagging.enabled:
        return DisabledTaggingClient()
    return GeminiTaggingClient(
        model=settings.tagging.model,
        temperature=settings.tagging.temperature,
        max_chars=settings.tagging.max_chars,
    )


def build_queue_processor(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    embedding_client: EmbeddingClient | None = None,
    tagging_client: TaggingClient | None = None,
    dispatcher: StructureDispatcher | None = None,
) -> QueueProcessor:
    """
    Assemble a QueueProcessor.

    Args:
        settings: Application settings (defaults to get_settings())
        session_factory: Session factory (defaults to the configured database)
        embedding_client: Embedding client (defaults to Gemini)
        tagging_client: Tagging client (defaults to Gemini, or disabled)
        dispatcher: Recompute dispatcher (defaults to one on session_factory)

    Returns:
        QueueProcessor with import and recompute handlers registered
    """
    settings = settings or get_settings()
    session_factory = session_factory or get_async_session_factory()
    dispatcher = dispatcher or StructureDispatcher(session_factory)

    handlers = {
        JobType.IMPORT_PROCESSING: ImportJobHandler(
            embedding_client=embedding_client or build_embedding_client(settings),
            tagging_client=tagging_client or build_tagging_client(settings),
            dispatcher=dispatcher,
            settings=settings.pipeline,
        ),
        JobType.STRUCTURE_RECOMPUTE: RecomputeJobHandler(),
    }
    return QueueProcessor(session_factory, handlers, settings=settings.pipeline)
