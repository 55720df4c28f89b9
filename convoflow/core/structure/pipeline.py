"""
Structure recompute step handler.

Single step: collect signals, build the structural state, hash it and
write a snapshot only when the hash differs from the latest snapshot
for the same (user, scope).

Dependencies: sqlalchemy, convoflow.boundary.db
System role: Handler for structure_recompute jobs
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.CRUD.structure_crud import snapshot_crud
from convoflow.boundary.db.models.job_model import JobModel, RecomputeStep
from convoflow.core.exceptions import StepProcessingError
from convoflow.core.queue.handlers import JobLease, StepOutcome
from convoflow.core.structure.signals import collect_signals, sort_signals
from convoflow.core.structure.state_hash import build_state, compute_state_hash
from convoflow.models.job import RecomputePayload, RecomputeProgress

logger = logging.getLogger(__name__)


class RecomputeJobHandler:
    """Runs the recompute step for structure_recompute jobs."""

    async def run_step(
        self,
        session: AsyncSession,
        job: JobModel,
        lease: JobLease | None = None,
    ) -> StepOutcome:
        if job.step not in (RecomputeStep.QUEUED.value, RecomputeStep.RECOMPUTE.value):
            raise StepProcessingError(
                f"Unknown recompute step: {job.step}",
                step=job.step,
                job_id=job.id,
            )

        payload = RecomputePayload.model_validate(
            job.payload or {"user_id": job.user_id, "scope": job.scope or "user"}
        )
        scope = job.scope or payload.scope

        signals = sort_signals(await collect_signals(session, payload.user_id))
        state = build_state(signals)
        state_hash = compute_state_hash(state)

        latest = await snapshot_crud.get_latest(session, payload.user_id, scope)
        changed = latest is None or latest.state_hash != state_hash
        if changed:
            await snapshot_crud.create(
                session,
                user_id=payload.user_id,
                scope=scope,
                state_hash=state_hash,
                state_payload=state.model_dump(mode="json"),
                job_id=job.id,
            )

        logger.info(
            f"{__name__}:run_step - Recompute finished",
            extra={
                "job_id": str(job.id),
                "user_id": payload.user_id,
                "signals": len(signals),
                "state_hash": state_hash[:16],
                "changed": changed,
                "reasons": payload.reasons,
            },
        )
        return StepOutcome(
            next_step=None,
            progress=RecomputeProgress(
                percent=100,
                signals=len(signals),
                state_hash=state_hash,
                changed=changed,
            ),
        )
