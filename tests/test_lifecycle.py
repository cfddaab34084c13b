"""Tests for the orchestrator state machine."""
from __future__ import annotations

import pytest

from gemini_agent.engine.lifecycle import OrchestratorState, validate_transition

S = OrchestratorState


@pytest.mark.parametrize("current,target", [
    (S.UNINITIALIZED, S.INITIALIZING),
    (S.INITIALIZING, S.READY),
    (S.INITIALIZING, S.UNINITIALIZED),
    (S.READY, S.INITIALIZING),
    (S.READY, S.DISPOSED),
    (S.UNINITIALIZED, S.DISPOSED),
])
def test_valid_transitions(current, target):
    validate_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (S.UNINITIALIZED, S.READY),
    (S.READY, S.UNINITIALIZED),
    (S.DISPOSED, S.INITIALIZING),
    (S.DISPOSED, S.READY),
])
def test_invalid_transitions(current, target):
    with pytest.raises(ValueError, match="Invalid state transition"):
        validate_transition(current, target)


def test_disposed_is_terminal_message():
    with pytest.raises(ValueError, match="terminal"):
        validate_transition(S.DISPOSED, S.UNINITIALIZED)
