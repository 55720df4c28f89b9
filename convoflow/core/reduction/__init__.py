"""Capture reduction diagnostics."""

from convoflow.core.reduction.diagnostics import approx_tokens, build_diagnostics

__all__ = ["approx_tokens", "build_diagnostics"]
