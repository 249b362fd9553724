"""Unit tests for the doubt state machine."""

from __future__ import annotations

import pytest

from learnhub.doubts.service import VALID_TRANSITIONS, InvalidTransitionError, validate_transition


class TestDoubtStateMachine:
    def test_states(self):
        assert set(VALID_TRANSITIONS) == {"pending", "answered", "closed"}

    def test_pending_can_be_answered(self):
        validate_transition("pending", "answered")

    def test_pending_can_be_closed(self):
        validate_transition("pending", "closed")

    def test_answered_can_be_closed(self):
        validate_transition("answered", "closed")

    def test_answered_cannot_be_answered_again(self):
        with pytest.raises(InvalidTransitionError, match="Doubt is already answered"):
            validate_transition("answered", "answered")

    def test_closed_is_terminal(self):
        assert VALID_TRANSITIONS["closed"] == frozenset()
        for target in ("pending", "answered", "closed"):
            with pytest.raises(InvalidTransitionError, match="Doubt is already closed"):
                validate_transition("closed", target)

    def test_nothing_returns_to_pending(self):
        for state, targets in VALID_TRANSITIONS.items():
            assert "pending" not in targets, state

    def test_invalid_transition_is_value_error(self):
        with pytest.raises(ValueError):
            validate_transition("answered", "pending")
