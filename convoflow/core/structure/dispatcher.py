"""
Structure recompute dispatcher.

Collapses recompute triggers: at most one pending, unclaimed recompute
job exists per (user, scope). A dispatch against an existing one merges
its reason into the payload instead of inserting another row.

Dependencies: sqlalchemy, convoflow.boundary.db
System role: Debounced enqueue for derived structure state
"""

import logging
from typing import Literal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from convoflow.boundary.db.base import utcnow
from convoflow.boundary.db.CRUD.job_crud import job_crud
from convoflow.boundary.db.models.job_model import JobModel, JobType
from convoflow.core.exceptions import DispatchError
from convoflow.models.job import RecomputePayload

logger = logging.getLogger(__name__)

DispatchReason = Literal["ingestion", "decision_change", "manual", "backfill"]

DEFAULT_SCOPE = "user"
MAX_DISPATCH_ATTEMPTS = 3


def debounce_key(user_id: str, scope: str) -> str:
    return f"{user_id}:{scope}"


class StructureDispatcher:
    """
    Find-or-create for pending recompute jobs.

    Each dispatch runs in its own session and commits on its own so that
    callers can invoke it after their primary write has been committed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def dispatch(
        self,
        user_id: str,
        scope: str = DEFAULT_SCOPE,
        reason: DispatchReason = "manual",
    ) -> None:
        """
        Ensure a pending recompute job exists for (user, scope).

        A new job reserves the unique coalesce_key. When two dispatches race,
        the loser's insert violates it, is rolled back and the dispatch is
        merged into the winner's row instead.

        Args:
            user_id: User whose structure should be recomputed
            scope: Recompute scope
            reason: Why the recompute was requested

        Raises:
            DispatchError: If the job row cannot be read or written
        """
        try:
            async with self._session_factory() as session:
                for _ in range(MAX_DISPATCH_ATTEMPTS):
                    existing = await job_crud.find_pending_recompute(session, user_id, scope)
                    if existing is not None:
                        await self._merge(session, existing, user_id, scope, reason)
                        return
                    try:
                        await self._create(session, user_id, scope, reason)
                        return
                    except IntegrityError:
                        await session.rollback()
                        logger.info(
                            f"{__name__}:dispatch - Concurrent dispatch won, merging",
                            extra={"user_id": user_id, "scope": scope, "reason": reason},
                        )
                raise DispatchError(
                    "Recompute job kept changing while dispatching",
                    {"user_id": user_id, "scope": scope, "reason": reason},
                )
        except SQLAlchemyError as e:
            raise DispatchError(
                f"Failed to dispatch structure recompute: {e}",
                {"user_id": user_id, "scope": scope, "reason": reason},
            ) from e

    async def _merge(
        self,
        session: AsyncSession,
        existing: JobModel,
        user_id: str,
        scope: str,
        reason: DispatchReason,
    ) -> None:
        payload = RecomputePayload.model_validate(
            existing.payload or {"user_id": user_id, "scope": scope}
        )
        if reason not in payload.reasons:
            payload.reasons.append(reason)
        payload.last_reason = reason
        existing.payload = payload.model_dump(mode="json")
        flag_modified(existing, "payload")
        existing.updated_at = utcnow()
        await session.commit()
        logger.info(
            f"{__name__}:dispatch - Merged into pending job",
            extra={"job_id": str(existing.id), "user_id": user_id, "reason": reason},
        )

    async def _create(
        self,
        session: AsyncSession,
        user_id: str,
        scope: str,
        reason: DispatchReason,
    ) -> None:
        payload = RecomputePayload(
            user_id=user_id,
            scope=scope,
            reasons=[reason],
            last_reason=reason,
        )
        key = debounce_key(user_id, scope)
        job = await job_crud.create_job(
            session,
            user_id=user_id,
            job_type=JobType.STRUCTURE_RECOMPUTE,
            payload=payload.model_dump(mode="json"),
            scope=scope,
            debounce_key=key,
            coalesce_key=key,
        )
        await session.commit()
        logger.info(
            f"{__name__}:dispatch - Recompute job created",
            extra={"job_id": str(job.id), "user_id": user_id, "reason": reason},
        )

    async def dispatch_best_effort(
        self,
        user_id: str,
        scope: str = DEFAULT_SCOPE,
        reason: DispatchReason = "manual",
    ) -> bool:
        """
        Dispatch, logging and swallowing failures.

        Returns:
            True if a pending job exists afterwards, False if dispatch failed
        """
        try:
            await self.dispatch(user_id, scope=scope, reason=reason)
            return True
        except DispatchError as e:
            logger.warning(
                f"{__name__}:dispatch_best_effort - Dispatch failed",
                extra={"user_id": user_id, "scope": scope, "reason": reason, "error": e.message},
            )
            return False
