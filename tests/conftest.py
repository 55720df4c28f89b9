"""
Shared test fixtures and configuration for entire test suite.

Provides: In-memory async database, session factory, fake AI clients,
pipeline settings sized for small inputs
Dependencies: pytest, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from convoflow.boundary.db.create_tables import create_all_tables, drop_all_tables
from convoflow.configs.pipeline import PipelineSettings
from convoflow.core.exceptions import EmbeddingError
from convoflow.models.tagging import ExtractedTag, TaggingResult


class FakeEmbeddingClient:
    """
    EmbeddingClient stand-in.

    Returns a small deterministic vector per text. ``failures`` is consumed
    one entry per call: an exception is raised, None lets the call through.
    """

    model_name = "fake-embedding"

    def __init__(self, failures: list[BaseException | None] | None = None) -> None:
        self.failures = list(failures or [])
        self.calls: list[list[str]] = []

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure
        return [[float(len(text)), 0.0, 1.0] for text in texts]


class FakeTaggingClient:
    """TaggingClient stand-in returning a fixed result."""

    def __init__(self, result: TaggingResult | None = None) -> None:
        self.result = result or TaggingResult(
            tags=[
                ExtractedTag(name="Postgres", category="technology", confidence=0.9),
                ExtractedTag(name="queues", category="topic"),
            ]
        )
        self.calls: list[tuple[str | None, list[tuple[str, str]]]] = []

    async def extract_tags(self, title, messages):
        self.calls.append((title, list(messages)))
        return self.result


def rate_limited() -> EmbeddingError:
    """Retryable embedding failure as raised for a 429."""
    return EmbeddingError("429 Resource exhausted", retryable=True)


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
async def async_engine():
    """
    Create in-memory SQLite async engine with all tables.

    Yields:
        AsyncEngine: Engine on a single shared connection
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    await create_all_tables(engine)

    yield engine

    await drop_all_tables(engine)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the production one."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_async_db(session_factory):
    """
    Session on the in-memory database.

    Yields:
        AsyncSession: Test database session with cleanup
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def pipeline_settings() -> PipelineSettings:
    """Small batches so multi-pass behaviour shows up with a handful of chunks."""
    return PipelineSettings(
        chunk_size=200,
        chunk_overlap=20,
        embedding_batch_size=2,
        max_chunks_per_run=4,
        max_retries_per_batch=3,
        retry_base_delay_seconds=0.0,
        lock_ttl_seconds=300,
        steps_per_pass=1,
        default_batch_limit=10,
        max_batch_limit=50,
    )


@pytest.fixture
def fake_embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def fake_tagging_client() -> FakeTaggingClient:
    return FakeTaggingClient()


@pytest.fixture
def user_id() -> str:
    return "user-123"


@pytest.fixture
def sample_job_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def mock_dispatcher():
    """
    Create mock StructureDispatcher.

    Returns:
        AsyncMock: dispatch_best_effort reports an enqueued job
    """
    dispatcher = AsyncMock()
    dispatcher.dispatch = AsyncMock()
    dispatcher.dispatch_best_effort = AsyncMock(return_value=True)
    return dispatcher
