"""Points calculator: pure functions, no storage access.

Applying a computed amount to a profile is the job of
``civiclean.gamification.points_service.apply_points_delta``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from civiclean.enums import CleaningStatus, Priority, TicketSize
from civiclean.errors import ValidationFailed

if TYPE_CHECKING:
    from civiclean.db.models import Ticket

REPORT = 50
ACCEPT = 20
CLEAN_PARTIAL = 100
CLEAN_COMPLETE = 200
VALIDATE = 30
LIKE_RECEIVED = 5
COMMENT_RECEIVED = 10

PRIORITY_MULTIPLIER: dict[Priority, Decimal] = {
    Priority.LOW: Decimal("1.0"),
    Priority.MEDIUM: Decimal("1.2"),
    Priority.HIGH: Decimal("1.5"),
    Priority.URGENT: Decimal("2.0"),
}

SIZE_MULTIPLIER: dict[TicketSize, Decimal] = {
    TicketSize.SMALL: Decimal("1.0"),
    TicketSize.MEDIUM: Decimal("1.3"),
    TicketSize.LARGE: Decimal("1.6"),
    TicketSize.XLARGE: Decimal("2.0"),
}


def report_points() -> int:
    return REPORT


def accept_points() -> int:
    return ACCEPT


def validate_points() -> int:
    return VALIDATE


def _coerce(enum_cls, value, label: str):  # noqa: ANN001, ANN202
    try:
        return enum_cls(value)
    except ValueError:
        msg = f"Invalid {label}: {value!r}"
        raise ValidationFailed(msg) from None


def cleaning_points(
    priority: Priority | str,
    size: TicketSize | str,
    cleaning_status: CleaningStatus | str,
) -> int:
    """Base rate x priority multiplier x size multiplier, rounded half up.

    Decimal arithmetic keeps products such as 100 x 1.5 x 1.3 = 195 exact.
    """
    priority = _coerce(Priority, priority, "priority")
    size = _coerce(TicketSize, size, "estimated size")
    cleaning_status = _coerce(CleaningStatus, cleaning_status, "cleaning status")

    base = CLEAN_COMPLETE if cleaning_status is CleaningStatus.COMPLETE else CLEAN_PARTIAL
    raw = Decimal(base) * PRIORITY_MULTIPLIER[priority] * SIZE_MULTIPLIER[size]
    return int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def ticket_points(ticket: Ticket, cleaner: int | None = None) -> dict[str, int]:
    """Full award breakdown recorded on a completed ticket.

    ``cleaner`` is the amount actually paid for the cleaning, read from the
    ledger; it is recomputed from the ticket only when absent.
    """
    if cleaner is None:
        cleaner = cleaning_points(ticket.priority, ticket.estimated_size, ticket.cleaning_status)
    return {
        "cleaner": cleaner,
        "reporter": report_points(),
        "validator": validate_points(),
    }
