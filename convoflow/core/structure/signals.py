"""
Structural signal collection.

A signal is a minimal structural fact (an active decision or an open
task) placed in time at the midpoint of its conversation's thinking
window. Ingestion timestamps are never used.

Dependencies: sqlalchemy, convoflow.boundary.db
System role: Input stage of the structure recompute pipeline
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from convoflow.boundary.db.base import ensure_utc
from convoflow.boundary.db.CRUD.conversation_crud import conversation_crud
from convoflow.boundary.db.CRUD.record_crud import decision_crud, task_crud
from convoflow.boundary.db.models.conversation_model import ConversationModel
from convoflow.core.exceptions import MissingThinkingTimeError

logger = logging.getLogger(__name__)

SignalKind = Literal["decision", "open_task"]


@dataclass(frozen=True)
class StructuralSignal:
    id: str
    kind: SignalKind
    occurred_at: datetime
    source_id: str
    project_id: str | None = None


def signal_id(kind: str, source_id: str, occurred_at: datetime, project_id: str | None) -> str:
    """Stable 16-hex id derived from the signal's content."""
    raw = ":".join([kind, source_id, occurred_at.isoformat(), project_id or ""])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def midpoint(start: datetime | None, end: datetime | None) -> datetime | None:
    """Midpoint of a window; a single bound is returned as-is."""
    start, end = ensure_utc(start), ensure_utc(end)
    if start and end:
        return start + (end - start) / 2
    return start or end


def _thinking_time(
    kind: str,
    record_id: UUID,
    conversation_id: UUID | None,
    conversations: dict[UUID, ConversationModel],
) -> datetime:
    conversation = conversations.get(conversation_id) if conversation_id else None
    occurred_at = (
        midpoint(conversation.started_at, conversation.ended_at) if conversation else None
    )
    if occurred_at is None:
        raise MissingThinkingTimeError(
            kind,
            record_id,
            {"conversation_id": str(conversation_id) if conversation_id else None},
        )
    return occurred_at


async def collect_signals(session: AsyncSession, user_id: str) -> list[StructuralSignal]:
    """
    Build signals for a user's active decisions and open tasks.

    Raises:
        MissingThinkingTimeError: If a record has no conversation or its
            conversation has no thinking window
    """
    decisions = await decision_crud.list_active(session, user_id)
    tasks = await task_crud.list_open(session, user_id)

    conversation_ids = {
        record.conversation_id
        for record in (*decisions, *tasks)
        if record.conversation_id is not None
    }
    conversations = {
        conversation.id: conversation
        for conversation in await conversation_crud.get_many(session, list(conversation_ids))
        if conversation.user_id == user_id
    }

    signals: list[StructuralSignal] = []
    for decision in decisions:
        occurred_at = _thinking_time("decision", decision.id, decision.conversation_id, conversations)
        signals.append(
            StructuralSignal(
                id=signal_id("decision", str(decision.id), occurred_at, decision.project_id),
                kind="decision",
                occurred_at=occurred_at,
                source_id=str(decision.id),
                project_id=decision.project_id,
            )
        )
    for task in tasks:
        occurred_at = _thinking_time("task", task.id, task.conversation_id, conversations)
        signals.append(
            StructuralSignal(
                id=signal_id("open_task", str(task.id), occurred_at, task.project_id),
                kind="open_task",
                occurred_at=occurred_at,
                source_id=str(task.id),
                project_id=task.project_id,
            )
        )

    logger.debug(
        f"{__name__}:collect_signals - Collected",
        extra={"user_id": user_id, "decisions": len(decisions), "tasks": len(tasks)},
    )
    return signals


def sort_signals(signals: Sequence[StructuralSignal]) -> list[StructuralSignal]:
    """Deterministic order: occurred_at, then kind, then id."""
    return sorted(signals, key=lambda s: (s.occurred_at, s.kind, s.id))
