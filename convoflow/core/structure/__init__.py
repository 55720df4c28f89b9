"""Structure recompute: dispatch, signals, state hashing and the step handler."""

from convoflow.core.structure.dispatcher import DispatchReason, StructureDispatcher, debounce_key
from convoflow.core.structure.pipeline import RecomputeJobHandler
from convoflow.core.structure.signals import StructuralSignal, collect_signals, midpoint, sort_signals
from convoflow.core.structure.state_hash import (
    StructuralState,
    build_state,
    canonical_json,
    compute_state_hash,
    round_bucket,
)

__all__ = [
    "DispatchReason",
    "RecomputeJobHandler",
    "StructuralSignal",
    "StructuralState",
    "StructureDispatcher",
    "build_state",
    "canonical_json",
    "collect_signals",
    "compute_state_hash",
    "debounce_key",
    "midpoint",
    "round_bucket",
    "sort_signals",
]
