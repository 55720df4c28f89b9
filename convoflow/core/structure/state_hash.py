"""
Structural state and its deterministic hash.

The state holds structure only: counts per UTC day, rounded scores and
sorted id lists. Two recomputes over the same records always produce the
same canonical JSON and therefore the same hash.

Dependencies: pydantic, hashlib
System role: Change detection for structure snapshots
"""

import hashlib
import json
import math
from collections import Counter, defaultdict
from typing import Any, Sequence

from pydantic import BaseModel, Field

from convoflow.core.structure.signals import StructuralSignal

TENSION_THRESHOLD = 1.0
PRIORITY_LIMIT = 3


class StructuralState(BaseModel):
    """Derived structure for one (user, scope)."""

    thinking_windows: dict[str, int] = Field(
        default_factory=dict,
        description="UTC day (YYYY-MM-DD) -> number of signals that day",
    )
    decision_density_bucket: float = 0.0
    open_task_count: int = 0
    friction_score_buckets: dict[str, float] = Field(default_factory=dict)
    tension_project_ids: list[str] = Field(default_factory=list)
    priority_project_ids: list[str] = Field(default_factory=list)


def round_bucket(value: float, decimals: int = 2) -> float:
    """
    Round a score so float noise does not change the hash.

    Raises:
        ValueError: If the value is NaN or infinite
    """
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"Cannot bucket non-finite value: {value}")
    return round(value, decimals)


def build_state(signals: Sequence[StructuralSignal]) -> StructuralState:
    """
    Aggregate sorted signals into a StructuralState.

    Args:
        signals: Signals (any order; aggregation is order-independent)

    Returns:
        Normalized StructuralState
    """
    days = Counter(signal.occurred_at.date().isoformat() for signal in signals)
    decisions = [s for s in signals if s.kind == "decision"]
    open_tasks = [s for s in signals if s.kind == "open_task"]

    decision_days = {s.occurred_at.date() for s in decisions}
    density = len(decisions) / len(decision_days) if decision_days else 0.0

    per_project: dict[str, dict[str, int]] = defaultdict(lambda: {"decision": 0, "open_task": 0})
    for signal in signals:
        if signal.project_id:
            per_project[signal.project_id][signal.kind] += 1

    friction = {
        project_id: round_bucket(counts["open_task"] / (counts["decision"] + 1))
        for project_id, counts in sorted(per_project.items())
    }
    tension = sorted(pid for pid, score in friction.items() if score >= TENSION_THRESHOLD)
    priority = [
        pid
        for pid, _ in sorted(friction.items(), key=lambda item: (-item[1], item[0]))[:PRIORITY_LIMIT]
    ]

    return StructuralState(
        thinking_windows=dict(sorted(days.items())),
        decision_density_bucket=round_bucket(density),
        open_task_count=len(open_tasks),
        friction_score_buckets=friction,
        tension_project_ids=tension,
        priority_project_ids=priority,
    )


def canonical_json(state: StructuralState | dict[str, Any]) -> str:
    """Compact JSON with sorted keys."""
    data = state.model_dump(mode="json") if isinstance(state, StructuralState) else state
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_state_hash(state: StructuralState) -> str:
    """SHA-256 hex digest of the canonical JSON form."""
    return hashlib.sha256(canonical_json(state).encode("utf-8")).hexdigest()
