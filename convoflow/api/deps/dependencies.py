"""
Dependency injection container.

Factory functions for FastAPI dependencies. External clients, the
dispatcher and the queue processor are built once per process and kept
in the service cache; tests replace them through dependency_overrides.

Dependencies: convoflow.configs, convoflow.application, convoflow.boundary, convoflow.core
System role: DI container for service injection
"""

import hmac
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.application.services import (
    CaptureService,
    ImportService,
    JobService,
    ThinkingTimeService,
    build_queue_processor,
)
from convoflow.application.services.queue_service import build_embedding_client, build_tagging_client
from convoflow.boundary.db import get_async_db
from convoflow.boundary.db.connection import get_async_session_factory
from convoflow.configs import Settings, get_settings
from convoflow.core.queue import QueueProcessor
from convoflow.core.structure import StructureDispatcher


class ServiceCache:
    """Container for cached process-wide instances."""

    def __init__(self):
        self._dispatcher = None
        self._embedding_client = None
        self._tagging_client = None
        self._processor = None

    @property
    def dispatcher(self) -> StructureDispatcher:
        """Get cached recompute dispatcher."""
        if self._dispatcher is None:
            self._dispatcher = StructureDispatcher(get_async_session_factory())
        return self._dispatcher

    @property
    def embedding_client(self):
        """Get cached embedding client."""
        if self._embedding_client is None:
            self._embedding_client = build_embedding_client(get_settings())
        return self._embedding_client

    @property
    def tagging_client(self):
        """Get cached tagging client."""
        if self._tagging_client is None:
            self._tagging_client = build_tagging_client(get_settings())
        return self._tagging_client

    @property
    def processor(self) -> QueueProcessor:
        """Get cached queue processor with both job handlers registered."""
        if self._processor is None:
            self._processor = build_queue_processor(
                get_settings(),
                session_factory=get_async_session_factory(),
                embedding_client=self.embedding_client,
                tagging_client=self.tagging_client,
                dispatcher=self.dispatcher,
            )
        return self._processor

    def clear(self) -> None:
        """Clear all cached instances."""
        self._dispatcher = None
        self._embedding_client = None
        self._tagging_client = None
        self._processor = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Resolve the caller.

    Session handling lives in front of this service; it forwards the
    authenticated user id in the X-User-Id header.

    Raises:
        HTTPException(401): Header missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return x_user_id.strip()


def require_admin(
    x_admin_token: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings_dependency),
) -> None:
    """
    Check the cron/admin credential.

    Accepts X-Admin-Token or an Authorization bearer token. Every request
    is rejected when no token is configured.

    Raises:
        HTTPException(401): Missing, wrong or unconfigured token
    """
    expected = settings.admin.cron_token
    supplied = x_admin_token
    if not supplied and authorization and authorization.lower().startswith("bearer "):
        supplied = authorization[7:].strip()

    if not expected or not supplied or not hmac.compare_digest(supplied, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_dispatcher() -> StructureDispatcher:
    return get_service_cache().dispatcher


def get_queue_processor() -> QueueProcessor:
    return get_service_cache().processor


def get_job_service(
    db: AsyncSession = Depends(get_async_db),
    settings: Settings = Depends(get_settings_dependency),
) -> JobService:
    """
    Get job service instance.

    Args:
        db: Async database session (injected via Depends)
        settings: Application settings (injected)

    Returns:
        JobService: Job service instance
    """
    return JobService(db=db, poll_limit=settings.pipeline.poll_job_limit)


def get_import_service(db: AsyncSession = Depends(get_async_db)) -> ImportService:
    return ImportService(db=db)


def get_capture_service(
    db: AsyncSession = Depends(get_async_db),
    dispatcher: StructureDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings_dependency),
) -> CaptureService:
    """
    Get capture service instance.

    Args:
        db: Async database session (injected)
        dispatcher: Recompute dispatcher (injected)
        settings: Application settings (injected)

    Returns:
        CaptureService: Capture service bound to the request session
    """
    return CaptureService(db=db, dispatcher=dispatcher, timezone=settings.default_timezone)


def get_thinking_time_service(
    db: AsyncSession = Depends(get_async_db),
    dispatcher: StructureDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings_dependency),
) -> ThinkingTimeService:
    return ThinkingTimeService(db=db, dispatcher=dispatcher, timezone=settings.default_timezone)
