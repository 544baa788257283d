"""Ticket lifecycle operations.

Each operation loads the ticket, runs every guard (caller role, transition
table, input) before touching state, then writes the ticket, the affected
profiles and the points ledger in a single transaction. Concurrent writers
on the same ticket are serialised by its ``version`` column.
"""

from __future__ import annotations

from datetime import date

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civiclean.config import get_settings
from civiclean.db.base import utcnow
from civiclean.db.models import Ticket
from civiclean.db.transaction import unit_of_work
from civiclean.enums import (
    CleaningStatus,
    Priority,
    TicketSize,
    TicketStatus,
    TicketType,
    ValidationStatus,
    Zone,
)
from civiclean.errors import Forbidden, InvalidTransition, NotFound, ValidationFailed
from civiclean.gamification import points
from civiclean.gamification.points_service import (
    apply_points_delta,
    get_ledger_entry,
    get_or_create_profile,
    reverse_points,
)
from civiclean.storage.photo_store import BasePhotoStore, delete_photos_best_effort, is_scoped_to
from civiclean.tickets.state_machine import transition_path, validate_transition

logger = structlog.get_logger()

MAX_PHOTOS = 5


# ---------------------------------------------------------------------------
# Idempotency keys (one award per ticket instance and attempt)
# ---------------------------------------------------------------------------


def report_key(ticket: Ticket) -> str:
    return f"ticket:{ticket.id}:report"


def accept_key(ticket: Ticket) -> str:
    return f"ticket:{ticket.id}:accept:{ticket.acceptance_count}"


def clean_key(ticket: Ticket) -> str:
    return f"ticket:{ticket.id}:clean:{ticket.cleaning_attempts}"


def validate_key(ticket: Ticket) -> str:
    return f"ticket:{ticket.id}:validate:{ticket.cleaning_attempts}"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_ticket(db: AsyncSession, ticket_id: str) -> Ticket:
    result = await db.execute(select(Ticket).where(Ticket.id == ticket_id))
    ticket = result.scalar_one_or_none()
    if ticket is None:
        raise NotFound(f"Ticket {ticket_id} not found")
    return ticket


async def list_tickets(
    db: AsyncSession,
    status: TicketStatus | None = None,
    zone: str | None = None,
    ticket_type: TicketType | None = None,
    reported_by: str | None = None,
    accepted_by: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Ticket]:
    stmt = select(Ticket)
    if status is not None:
        stmt = stmt.where(Ticket.status == status)
    if zone is not None:
        stmt = stmt.where(Ticket.zone == zone)
    if ticket_type is not None:
        stmt = stmt.where(Ticket.type == ticket_type)
    if reported_by is not None:
        stmt = stmt.where(Ticket.reported_by == reported_by)
    if accepted_by is not None:
        stmt = stmt.where(Ticket.accepted_by == accepted_by)
    stmt = stmt.order_by(Ticket.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def _enum(enum_cls, value, label: str):  # noqa: ANN001, ANN202
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationFailed(f"Invalid {label}: {value!r}") from None


def _photos(
    refs: list[str] | None,
    label: str,
    owner: str,
    photo_store: BasePhotoStore | None = None,
) -> list[str]:
    """Trimmed photo refs; each must live under the submitting user's prefix."""
    cleaned = [ref.strip() for ref in refs or [] if ref and ref.strip()]
    if not cleaned:
        raise ValidationFailed(f"At least one {label} photo is required")
    if len(cleaned) > MAX_PHOTOS:
        raise ValidationFailed(f"At most {MAX_PHOTOS} {label} photos are allowed")
    for ref in cleaned:
        path = photo_store.path_from_ref(ref) if photo_store is not None else ref
        if not is_scoped_to(path, owner):
            raise ValidationFailed(f"Photo {ref!r} was not uploaded by this user")
    return cleaned


def _validate_report(
    title: str,
    description: str,
    latitude: float,
    longitude: float,
    address: str,
) -> None:
    errors = []
    if not 10 <= len(title.strip()) <= 50:
        errors.append("Title must be between 10 and 50 characters")
    if not 20 <= len(description.strip()) <= 300:
        errors.append("Description must be between 20 and 300 characters")
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        errors.append("Invalid location coordinates")
    if len(address.strip()) < 5:
        errors.append("Address must be at least 5 characters")
    if errors:
        raise ValidationFailed("; ".join(errors))


def _require_cleaner(ticket: Ticket, caller_id: str, action: str) -> None:
    if ticket.accepted_by is None or ticket.accepted_by != caller_id:
        raise Forbidden(f"Only the assigned cleaner can {action} this ticket")


# ---------------------------------------------------------------------------
# Lifecycle operations
# ---------------------------------------------------------------------------


async def report_ticket(
    db: AsyncSession,
    caller_id: str,
    *,
    title: str,
    description: str,
    latitude: float,
    longitude: float,
    address: str,
    ticket_type: TicketType | str,
    priority: Priority | str = Priority.MEDIUM,
    estimated_size: TicketSize | str = TicketSize.MEDIUM,
    before_photos: list[str],
    zone: Zone | str | None = None,
    photo_store: BasePhotoStore | None = None,
    activity_date: date | None = None,
) -> Ticket:
    """Create a ticket in ``reported`` and reward the reporter."""
    _validate_report(title, description, latitude, longitude, address)
    ticket_type = _enum(TicketType, ticket_type, "ticket type")
    priority = _enum(Priority, priority, "priority")
    estimated_size = _enum(TicketSize, estimated_size, "estimated size")
    zone_value = _enum(Zone, zone, "zone").value if zone is not None else None
    photos = _photos(before_photos, "before", caller_id, photo_store)

    async with unit_of_work(db):
        reporter = await get_or_create_profile(db, caller_id)
        ticket = Ticket(
            title=title.strip(),
            description=description.strip(),
            latitude=latitude,
            longitude=longitude,
            address=address.strip(),
            zone=zone_value,
            type=ticket_type,
            priority=priority,
            estimated_size=estimated_size,
            status=TicketStatus.REPORTED,
            reported_by=caller_id,
            before_photos=photos,
            after_photos=[],
            liked_by=[],
        )
        db.add(ticket)
        await db.flush()

        reporter.tickets_reported += 1
        await apply_points_delta(
            db, caller_id, points.report_points(), "ticket_report", ticket.id,
            "Ticket reported", report_key(ticket), activity_date,
        )

    logger.info("ticket_reported", ticket_id=ticket.id, reporter=caller_id)
    return ticket


async def accept_ticket(
    db: AsyncSession,
    ticket_id: str,
    caller_id: str,
    *,
    activity_date: date | None = None,
) -> Ticket:
    """reported -> accepted. The reporter can never accept their own ticket."""
    async with unit_of_work(db):
        ticket = await get_ticket(db, ticket_id)
        validate_transition(ticket.status, TicketStatus.ACCEPTED)
        if caller_id == ticket.reported_by:
            raise Forbidden("Cannot accept your own ticket")

        cleaner = await get_or_create_profile(db, caller_id)
        ticket.status = TicketStatus.ACCEPTED
        ticket.accepted_by = caller_id
        ticket.accepted_at = utcnow()
        ticket.acceptance_count += 1

        cleaner.tickets_accepted += 1
        await apply_points_delta(
            db, caller_id, points.accept_points(), "ticket_accept", ticket.id,
            "Ticket accepted", accept_key(ticket), activity_date,
        )

    logger.info("ticket_accepted", ticket_id=ticket.id, cleaner=caller_id)
    return ticket


async def _begin_cleaning(
    db: AsyncSession, ticket_id: str, caller_id: str, expected: TicketStatus, action: str
) -> Ticket:
    async with unit_of_work(db):
        ticket = await get_ticket(db, ticket_id)
        _require_cleaner(ticket, caller_id, action)
        if ticket.status is not expected:
            raise InvalidTransition(ticket.status.value, TicketStatus.IN_PROGRESS.value)
        validate_transition(ticket.status, TicketStatus.IN_PROGRESS)
        ticket.status = TicketStatus.IN_PROGRESS

    logger.info("ticket_cleaning_started", ticket_id=ticket.id, action=action)
    return ticket


async def start_cleaning(db: AsyncSession, ticket_id: str, caller_id: str) -> Ticket:
    """accepted -> in_progress."""
    return await _begin_cleaning(db, ticket_id, caller_id, TicketStatus.ACCEPTED, "start")


async def retry_cleaning(db: AsyncSession, ticket_id: str, caller_id: str) -> Ticket:
    """rejected -> in_progress, for a cleaner whose work was rejected."""
    return await _begin_cleaning(db, ticket_id, caller_id, TicketStatus.REJECTED, "retry")


async def abandon_ticket(db: AsyncSession, ticket_id: str, caller_id: str) -> Ticket:
    """Step back: in_progress -> accepted (pause), accepted -> reported (release).

    Releasing voids the acceptance: the cleaner is unassigned and the
    acceptance award is reversed.
    """
    async with unit_of_work(db):
        ticket = await get_ticket(db, ticket_id)
        _require_cleaner(ticket, caller_id, "abandon")
        if ticket.status is TicketStatus.IN_PROGRESS:
            target = TicketStatus.ACCEPTED
        else:
            target = TicketStatus.REPORTED
        validate_transition(ticket.status, target)

        if target is TicketStatus.REPORTED:
            await reverse_points(db, accept_key(ticket), "Ticket released by cleaner")
            ticket.accepted_by = None
            ticket.accepted_at = None
        ticket.status = target

    logger.info("ticket_abandoned", ticket_id=ticket.id, cleaner=caller_id, status=target.value)
    return ticket


async def complete_ticket(
    db: AsyncSession,
    ticket_id: str,
    caller_id: str,
    after_photos: list[str],
    cleaning_status: CleaningStatus | str,
    *,
    photo_store: BasePhotoStore | None = None,
    activity_date: date | None = None,
) -> Ticket:
    """Submit the cleaning: -> validating, cleaning points awarded optimistically."""
    async with unit_of_work(db):
        ticket = await get_ticket(db, ticket_id)
        _require_cleaner(ticket, caller_id, "complete")
        if caller_id == ticket.reported_by:
            raise Forbidden("Cannot clean your own ticket")
        if ticket.status not in (TicketStatus.ACCEPTED, TicketStatus.IN_PROGRESS):
            raise InvalidTransition(ticket.status.value, TicketStatus.VALIDATING.value)
        transition_path(ticket.status, TicketStatus.VALIDATING)
        cleaning_status = _enum(CleaningStatus, cleaning_status, "cleaning status")
        photos = _photos(after_photos, "after", caller_id, photo_store)

        cleaner = await get_or_create_profile(db, caller_id)
        ticket.status = TicketStatus.VALIDATING
        ticket.after_photos = photos
        ticket.cleaning_status = cleaning_status
        ticket.validation_status = ValidationStatus.PENDING
        ticket.validated_at = None
        ticket.rejection_reason = None
        ticket.cleaning_attempts += 1

        amount = points.cleaning_points(ticket.priority, ticket.estimated_size, cleaning_status)
        cleaner.tickets_cleaned += 1
        await apply_points_delta(
            db, caller_id, amount, "ticket_clean", ticket.id,
            f"Cleaning submitted ({cleaning_status.value})", clean_key(ticket), activity_date,
        )

    logger.info("ticket_cleaning_submitted", ticket_id=ticket.id, cleaner=caller_id, points=amount)
    return ticket


async def validate_ticket(
    db: AsyncSession,
    ticket_id: str,
    caller_id: str,
    approved: bool,
    message: str | None = None,
    *,
    photo_store: BasePhotoStore | None = None,
    reopen: bool | None = None,
    activity_date: date | None = None,
) -> Ticket:
    """Reporter reviews the cleaning.

    Approve: validating -> completed; the cleaning award stands and the
    reporter earns the validation bonus.

    Reject: validating -> rejected; the cleaning award is reversed from the
    ledger and after-photos are dropped. When ``reopen`` (the default from
    settings) the cleaner is unassigned and the ticket goes back to
    ``reported`` for anyone to take; otherwise it stays assigned and the
    cleaner may retry. Photo deletion happens after commit and
    never fails the operation.
    """
    if reopen is None:
        reopen = get_settings().reopen_rejected_tickets

    photos_to_delete: list[str] = []
    photo_owner: str | None = None
    async with unit_of_work(db):
        ticket = await get_ticket(db, ticket_id)
        if caller_id != ticket.reported_by:
            raise Forbidden("Only the reporter can validate this ticket")
        target = TicketStatus.COMPLETED if approved else TicketStatus.REJECTED
        validate_transition(ticket.status, target)

        validator = await get_or_create_profile(db, caller_id)
        now = utcnow()
        ticket.validated_at = now

        if approved:
            award = await get_ledger_entry(db, clean_key(ticket))
            ticket.status = TicketStatus.COMPLETED
            ticket.completed_at = now
            ticket.validated_by = caller_id
            ticket.validation_status = ValidationStatus.APPROVED
            ticket.points_awarded = points.ticket_points(ticket, award.amount if award is not None else None)
        else:
            await reverse_points(db, clean_key(ticket), "Cleaning rejected by reporter")
            photos_to_delete = list(ticket.after_photos)
            photo_owner = ticket.accepted_by
            ticket.validation_status = ValidationStatus.REJECTED
            ticket.rejection_reason = (message or "").strip() or "Validation rejected"
            ticket.after_photos = []
            ticket.cleaning_status = None
            ticket.status = TicketStatus.REJECTED
            if reopen:
                validate_transition(ticket.status, TicketStatus.REPORTED)
                ticket.accepted_by = None
                ticket.accepted_at = None
                ticket.status = TicketStatus.REPORTED

        validator.tickets_validated += 1
        await apply_points_delta(
            db, caller_id, points.validate_points(), "ticket_validate", ticket.id,
            "Cleaning reviewed", validate_key(ticket), activity_date,
        )

    logger.info(
        "ticket_validated",
        ticket_id=ticket.id,
        approved=approved,
        status=ticket.status.value,
    )

    if photos_to_delete and photo_store is not None:
        await delete_photos_best_effort(photo_store, photos_to_delete, ticket.id, owner=photo_owner)

    return ticket

