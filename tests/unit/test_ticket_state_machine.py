"""Unit tests for the ticket state machine."""

from __future__ import annotations

import pytest

from civiclean.enums import TicketStatus
from civiclean.errors import InvalidTransition
from civiclean.tickets.state_machine import (
    VALID_TRANSITIONS,
    can_transition,
    transition_path,
    validate_transition,
)

S = TicketStatus


class TestTicketStateMachine:
    """Test ticket status transitions."""

    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(TicketStatus)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (S.REPORTED, S.ACCEPTED),
            (S.ACCEPTED, S.IN_PROGRESS),
            (S.ACCEPTED, S.REPORTED),
            (S.IN_PROGRESS, S.VALIDATING),
            (S.IN_PROGRESS, S.ACCEPTED),
            (S.VALIDATING, S.COMPLETED),
            (S.VALIDATING, S.REJECTED),
            (S.REJECTED, S.IN_PROGRESS),
            (S.REJECTED, S.REPORTED),
        ],
    )
    def test_legal_transitions(self, current, target):
        assert can_transition(current, target)
        validate_transition(current, target)  # Should not raise

    def test_completed_is_terminal(self):
        assert VALID_TRANSITIONS[S.COMPLETED] == frozenset()
        for target in TicketStatus:
            with pytest.raises(InvalidTransition):
                validate_transition(S.COMPLETED, target)

    def test_cannot_skip_to_completed(self):
        with pytest.raises(InvalidTransition, match="reported -> completed"):
            validate_transition(S.REPORTED, S.COMPLETED)

    def test_self_transition_rejected(self):
        for status in TicketStatus:
            assert not can_transition(status, status)

    def test_error_names_the_pair(self):
        with pytest.raises(InvalidTransition) as exc_info:
            validate_transition(S.VALIDATING, S.ACCEPTED)
        assert exc_info.value.current == "validating"
        assert exc_info.value.target == "accepted"
        assert exc_info.value.to_dict()["from"] == "validating"
        assert exc_info.value.status_code == 409

    def test_accepts_plain_strings(self):
        assert can_transition("reported", "accepted")
        assert not can_transition("reported", "bogus")

    def test_unknown_status_is_invalid(self):
        with pytest.raises(InvalidTransition):
            validate_transition("archived", "reported")


class TestTransitionPath:
    """``accepted`` collapses through ``in_progress`` on submission."""

    def test_accepted_to_validating_passes_in_progress(self):
        assert transition_path(S.ACCEPTED, S.VALIDATING) == [S.IN_PROGRESS, S.VALIDATING]

    def test_in_progress_to_validating_is_direct(self):
        assert transition_path(S.IN_PROGRESS, S.VALIDATING) == [S.VALIDATING]

    def test_reported_to_validating_rejected(self):
        with pytest.raises(InvalidTransition):
            transition_path(S.REPORTED, S.VALIDATING)

    def test_rejected_to_validating_rejected(self):
        with pytest.raises(InvalidTransition):
            transition_path(S.REJECTED, S.VALIDATING)
