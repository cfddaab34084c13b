"""Orchestrator lifecycle state machine.

Defines valid transitions and enforces them. Invalid transitions
raise ValueError rather than silently proceeding.

State Diagram:

    UNINITIALIZED ──> INITIALIZING ──┬──> READY ──> INITIALIZING  (reinitialize)
          ^                          │
          └──────────────────────────┘  (initialization failed)

    Any state ──> DISPOSED  (terminal)
"""
from __future__ import annotations

from enum import Enum


class OrchestratorState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DISPOSED = "disposed"


VALID_TRANSITIONS: dict[OrchestratorState, set[OrchestratorState]] = {
    OrchestratorState.UNINITIALIZED: {
        OrchestratorState.INITIALIZING,
        OrchestratorState.DISPOSED,
    },
    OrchestratorState.INITIALIZING: {
        OrchestratorState.READY,
        OrchestratorState.UNINITIALIZED,
        OrchestratorState.DISPOSED,
    },
    OrchestratorState.READY: {
        OrchestratorState.INITIALIZING,  # reinitialize
        OrchestratorState.DISPOSED,
    },
    OrchestratorState.DISPOSED: set(),
}


def validate_transition(
    current: OrchestratorState, target: OrchestratorState,
) -> None:
    """Validate a state transition. Raises ValueError if invalid."""
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        allowed_str = ", ".join(s.value for s in allowed) or "none (terminal)"
        raise ValueError(
            f"Invalid state transition: {current.value} -> {target.value}. "
            f"Allowed from {current.value}: {allowed_str}"
        )
