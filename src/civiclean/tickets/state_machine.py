"""Ticket state machine.

State progression: reported -> accepted -> in_progress -> validating -> completed
with the side branches listed in VALID_TRANSITIONS. Transitions are checked
against the table before any side effect is applied.
"""

from __future__ import annotations

from civiclean.enums import TicketStatus
from civiclean.errors import InvalidTransition

VALID_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.REPORTED: frozenset({TicketStatus.ACCEPTED}),
    # cleaner starts work, or releases the ticket
    TicketStatus.ACCEPTED: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.REPORTED}),
    # cleaner submits, or pauses
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.VALIDATING, TicketStatus.ACCEPTED}),
    TicketStatus.VALIDATING: frozenset({TicketStatus.COMPLETED, TicketStatus.REJECTED}),
    # cleaner retries, or the ticket is reopened for anyone
    TicketStatus.REJECTED: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.REPORTED}),
    TicketStatus.COMPLETED: frozenset(),
}


def can_transition(current: TicketStatus | str, target: TicketStatus | str) -> bool:
    try:
        current, target = TicketStatus(current), TicketStatus(target)
    except ValueError:
        return False
    return target in VALID_TRANSITIONS[current]


def validate_transition(current: TicketStatus | str, target: TicketStatus | str) -> None:
    """Raise InvalidTransition unless current -> target is in the table."""
    if not can_transition(current, target):
        raise InvalidTransition(_value(current), _value(target))


def transition_path(current: TicketStatus, target: TicketStatus) -> list[TicketStatus]:
    """Validate and return the steps taken to reach ``target``.

    ``accepted`` collapses through ``in_progress`` on the way to
    ``validating``; every step is checked against the table.
    """
    if current is TicketStatus.ACCEPTED and target is TicketStatus.VALIDATING:
        steps = [TicketStatus.IN_PROGRESS, TicketStatus.VALIDATING]
    else:
        steps = [target]

    previous = current
    for step in steps:
        if not can_transition(previous, step):
            raise InvalidTransition(_value(current), _value(target))
        previous = step
    return steps


def _value(status: TicketStatus | str) -> str:
    return status.value if isinstance(status, TicketStatus) else str(status)
