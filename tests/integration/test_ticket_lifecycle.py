"""Ticket lifecycle tests against the SQLite engine database."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from civiclean.db.models import PointsLedgerEntry
from civiclean.enums import CleaningStatus, Priority, TicketSize, TicketStatus, ValidationStatus
from civiclean.errors import Forbidden, InvalidTransition, NotFound, ValidationFailed
from civiclean.gamification.points_service import get_profile
from civiclean.storage.photo_store import SupabasePhotoStore
from civiclean.tickets import service
from tests.conftest import CLEANER, OTHER, REPORTER, TICKET_FIELDS, RecordingPhotoStore

AFTER = ["user-cleaner/after.jpg"]


async def _points(db, user_id):
    profile = await get_profile(db, user_id)
    await db.refresh(profile)
    return profile.points


async def _submitted(db, ticket, status=CleaningStatus.COMPLETE):
    await service.accept_ticket(db, ticket.id, CLEANER)
    return await service.complete_ticket(db, ticket.id, CLEANER, AFTER, status)


class TestReport:

    @pytest.mark.asyncio
    async def test_report_creates_reported_ticket(self, db_session, reported_ticket):
        assert reported_ticket.status is TicketStatus.REPORTED
        assert reported_ticket.reported_by == REPORTER
        assert reported_ticket.accepted_by is None
        assert reported_ticket.version == 1

        reporter = await get_profile(db_session, REPORTER)
        assert reporter.points == 50
        assert reporter.tickets_reported == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("title", "corto"),
            ("description", "muy corta"),
            ("address", "Av"),
            ("latitude", 91.0),
            ("before_photos", []),
            ("before_photos", [f"p{i}.jpg" for i in range(6)]),
            ("ticket_type", "plastic"),
            ("priority", "critical"),
            ("zone", "Downtown"),
        ],
    )
    async def test_invalid_input_rejected(self, db_session, field, value):
        fields = {**TICKET_FIELDS, field: value}
        with pytest.raises(ValidationFailed):
            await service.report_ticket(db_session, REPORTER, **fields)

    @pytest.mark.asyncio
    async def test_before_photos_must_be_reporters_own(self, db_session):
        fields = {**TICKET_FIELDS, "before_photos": ["user-other/before.jpg"]}
        with pytest.raises(ValidationFailed, match="not uploaded by this user"):
            await service.report_ticket(db_session, REPORTER, **fields)

    @pytest.mark.asyncio
    async def test_get_unknown_ticket(self, db_session):
        with pytest.raises(NotFound):
            await service.get_ticket(db_session, "missing")


class TestAccept:

    @pytest.mark.asyncio
    async def test_accept(self, db_session, reported_ticket):
        ticket = await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        assert ticket.status is TicketStatus.ACCEPTED
        assert ticket.accepted_by == CLEANER
        assert ticket.accepted_at is not None
        assert ticket.acceptance_count == 1

        cleaner = await get_profile(db_session, CLEANER)
        assert cleaner.points == 20
        assert cleaner.tickets_accepted == 1

    @pytest.mark.asyncio
    async def test_self_accept_forbidden(self, db_session, reported_ticket):
        with pytest.raises(Forbidden):
            await service.accept_ticket(db_session, reported_ticket.id, REPORTER)
        ticket = await service.get_ticket(db_session, reported_ticket.id)
        assert ticket.status is TicketStatus.REPORTED
        assert await _points(db_session, REPORTER) == 50

    @pytest.mark.asyncio
    async def test_accept_twice_is_invalid(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        with pytest.raises(InvalidTransition):
            await service.accept_ticket(db_session, reported_ticket.id, OTHER)


class TestStartAndAbandon:

    @pytest.mark.asyncio
    async def test_start_by_cleaner(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        ticket = await service.start_cleaning(db_session, reported_ticket.id, CLEANER)
        assert ticket.status is TicketStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_start_by_stranger_forbidden(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        with pytest.raises(Forbidden):
            await service.start_cleaning(db_session, reported_ticket.id, OTHER)

    @pytest.mark.asyncio
    async def test_pause_returns_to_accepted(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        await service.start_cleaning(db_session, reported_ticket.id, CLEANER)
        ticket = await service.abandon_ticket(db_session, reported_ticket.id, CLEANER)
        assert ticket.status is TicketStatus.ACCEPTED
        assert ticket.accepted_by == CLEANER

    @pytest.mark.asyncio
    async def test_release_reverses_accept_award(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        ticket = await service.abandon_ticket(db_session, reported_ticket.id, CLEANER)
        assert ticket.status is TicketStatus.REPORTED
        assert ticket.accepted_by is None
        assert ticket.accepted_at is None
        assert await _points(db_session, CLEANER) == 0

        # A second acceptance is a new award
        await service.accept_ticket(db_session, reported_ticket.id, OTHER)
        assert await _points(db_session, OTHER) == 20


class TestComplete:

    @pytest.mark.asyncio
    async def test_accepted_collapses_through_in_progress(self, db_session, reported_ticket):
        ticket = await _submitted(db_session, reported_ticket)
        assert ticket.status is TicketStatus.VALIDATING
        assert ticket.after_photos == AFTER
        assert ticket.cleaning_status is CleaningStatus.COMPLETE
        assert ticket.validation_status is ValidationStatus.PENDING
        assert ticket.cleaning_attempts == 1

        cleaner = await get_profile(db_session, CLEANER)
        # accept 20 + medium/medium complete 312
        assert cleaner.points == 332
        assert cleaner.tickets_cleaned == 1

    @pytest.mark.asyncio
    async def test_urgent_large_complete_awards_640(self, db_session):
        ticket = await service.report_ticket(
            db_session, REPORTER, **{**TICKET_FIELDS, "priority": Priority.URGENT, "estimated_size": TicketSize.LARGE}
        )
        await _submitted(db_session, ticket)
        award = await db_session.scalar(
            select(PointsLedgerEntry).where(PointsLedgerEntry.idempotency_key == f"ticket:{ticket.id}:clean:1")
        )
        assert award.amount == 640

    @pytest.mark.asyncio
    async def test_only_assigned_cleaner(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        with pytest.raises(Forbidden):
            await service.complete_ticket(db_session, reported_ticket.id, OTHER, AFTER, "complete")

    @pytest.mark.asyncio
    async def test_reported_ticket_cannot_complete(self, db_session, reported_ticket):
        with pytest.raises(Forbidden):
            await service.complete_ticket(db_session, reported_ticket.id, CLEANER, AFTER, "complete")

    @pytest.mark.asyncio
    async def test_requires_after_photo(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        with pytest.raises(ValidationFailed):
            await service.complete_ticket(db_session, reported_ticket.id, CLEANER, [], "complete")
        ticket = await service.get_ticket(db_session, reported_ticket.id)
        assert ticket.status is TicketStatus.ACCEPTED
        assert ticket.cleaning_attempts == 0

    @pytest.mark.asyncio
    async def test_invalid_cleaning_status(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        with pytest.raises(ValidationFailed):
            await service.complete_ticket(db_session, reported_ticket.id, CLEANER, AFTER, "mostly")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "ref",
        [
            "user-reporter/before.jpg",
            "user-other/upload.jpg",
            "user-cleaner/../user-reporter/before.jpg",
            "after.jpg",
        ],
    )
    async def test_after_photos_must_be_cleaners_own(self, db_session, reported_ticket, ref):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        with pytest.raises(ValidationFailed, match="not uploaded by this user"):
            await service.complete_ticket(db_session, reported_ticket.id, CLEANER, [ref], "complete")

        ticket = await service.get_ticket(db_session, reported_ticket.id)
        assert ticket.status is TicketStatus.ACCEPTED
        assert ticket.after_photos == []
        assert await _points(db_session, CLEANER) == 20

    @pytest.mark.asyncio
    async def test_store_refs_resolved_to_paths(self, db_session, reported_ticket):
        store = SupabasePhotoStore("https://x.supabase.co", "k", "ticket-photos")
        own = f"{store.public_prefix}user-cleaner/after.jpg"
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)

        ticket = await service.complete_ticket(
            db_session, reported_ticket.id, CLEANER, [own], "complete", photo_store=store
        )
        assert ticket.after_photos == [own]


class TestValidate:

    @pytest.mark.asyncio
    async def test_approve(self, db_session, reported_ticket):
        await _submitted(db_session, reported_ticket)
        ticket = await service.validate_ticket(db_session, reported_ticket.id, REPORTER, approved=True)

        assert ticket.status is TicketStatus.COMPLETED
        assert ticket.validated_by == REPORTER
        assert ticket.completed_at is not None
        assert ticket.validation_status is ValidationStatus.APPROVED
        assert ticket.points_awarded == {"cleaner": 312, "reporter": 50, "validator": 30}

        reporter = await get_profile(db_session, REPORTER)
        assert reporter.points == 80
        assert reporter.tickets_validated == 1
        # Cleaning points are not paid twice
        assert await _points(db_session, CLEANER) == 332

    @pytest.mark.asyncio
    async def test_only_reporter_validates(self, db_session, reported_ticket):
        await _submitted(db_session, reported_ticket)
        with pytest.raises(Forbidden):
            await service.validate_ticket(db_session, reported_ticket.id, CLEANER, approved=True)
        with pytest.raises(Forbidden):
            await service.validate_ticket(db_session, reported_ticket.id, OTHER, approved=True)

    @pytest.mark.asyncio
    async def test_validate_requires_validating(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        with pytest.raises(InvalidTransition):
            await service.validate_ticket(db_session, reported_ticket.id, REPORTER, approved=True)

    @pytest.mark.asyncio
    async def test_completed_is_terminal(self, db_session, reported_ticket):
        await _submitted(db_session, reported_ticket)
        await service.validate_ticket(db_session, reported_ticket.id, REPORTER, approved=True)
        with pytest.raises(InvalidTransition):
            await service.validate_ticket(db_session, reported_ticket.id, REPORTER, approved=False)

    @pytest.mark.asyncio
    async def test_reject_round_trip_restores_reported(self, db_session, reported_ticket):
        store = RecordingPhotoStore()
        await _submitted(db_session, reported_ticket)
        ticket = await service.validate_ticket(
            db_session, reported_ticket.id, REPORTER, approved=False,
            message="Sigue sucio", photo_store=store, reopen=True,
        )

        assert ticket.status is TicketStatus.REPORTED
        assert ticket.accepted_by is None
        assert ticket.accepted_at is None
        assert ticket.cleaning_status is None
        assert ticket.after_photos == []
        assert ticket.validation_status is ValidationStatus.REJECTED
        assert ticket.rejection_reason == "Sigue sucio"
        assert store.deleted == AFTER

        # Cleaning award reversed; only the acceptance award remains
        assert await _points(db_session, CLEANER) == 20
        reporter = await get_profile(db_session, REPORTER)
        assert reporter.tickets_validated == 1
        assert reporter.points == 80

        # Available again for anyone, including the same cleaner
        again = await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        assert again.acceptance_count == 2
        assert await _points(db_session, CLEANER) == 40

    @pytest.mark.asyncio
    async def test_reject_survives_photo_store_failure(self, db_session, reported_ticket):
        await _submitted(db_session, reported_ticket)
        ticket = await service.validate_ticket(
            db_session, reported_ticket.id, REPORTER, approved=False,
            photo_store=RecordingPhotoStore(fail_deletes=True), reopen=True,
        )
        assert ticket.status is TicketStatus.REPORTED

    @pytest.mark.asyncio
    async def test_reject_never_deletes_reporter_evidence(self, db_session, reported_ticket):
        store = RecordingPhotoStore()
        await _submitted(db_session, reported_ticket)
        # Rows written before refs were checked may still point at foreign blobs
        ticket = await service.get_ticket(db_session, reported_ticket.id)
        ticket.after_photos = [*AFTER, *ticket.before_photos]
        await db_session.commit()

        ticket = await service.validate_ticket(
            db_session, reported_ticket.id, REPORTER, approved=False, photo_store=store, reopen=True,
        )
        assert store.deleted == AFTER
        assert ticket.before_photos == ["user-reporter/before.jpg"]

    @pytest.mark.asyncio
    async def test_reject_without_reopen_allows_retry(self, db_session, reported_ticket):
        await _submitted(db_session, reported_ticket)
        ticket = await service.validate_ticket(
            db_session, reported_ticket.id, REPORTER, approved=False, reopen=False,
        )
        assert ticket.status is TicketStatus.REJECTED
        assert ticket.accepted_by == CLEANER

        ticket = await service.retry_cleaning(db_session, reported_ticket.id, CLEANER)
        assert ticket.status is TicketStatus.IN_PROGRESS

        ticket = await service.complete_ticket(db_session, reported_ticket.id, CLEANER, AFTER, "partial")
        assert ticket.cleaning_attempts == 2
        ticket = await service.validate_ticket(db_session, reported_ticket.id, REPORTER, approved=True)
        # medium/medium partial = 156
        assert ticket.points_awarded["cleaner"] == 156
        assert await _points(db_session, CLEANER) == 20 + 156

        reporter = await get_profile(db_session, REPORTER)
        assert reporter.tickets_validated == 2
        assert reporter.points == 50 + 30 + 30

    @pytest.mark.asyncio
    async def test_retry_requires_rejected(self, db_session, reported_ticket):
        await service.accept_ticket(db_session, reported_ticket.id, CLEANER)
        with pytest.raises(InvalidTransition):
            await service.retry_cleaning(db_session, reported_ticket.id, CLEANER)


class TestListTickets:

    @pytest.mark.asyncio
    async def test_filters(self, db_session, reported_ticket):
        other = await service.report_ticket(
            db_session, OTHER, **{**TICKET_FIELDS, "zone": "North", "before_photos": [f"{OTHER}/before.jpg"]}
        )
        await service.accept_ticket(db_session, other.id, CLEANER)

        reported = await service.list_tickets(db_session, status=TicketStatus.REPORTED)
        assert [t.id for t in reported] == [reported_ticket.id]

        north = await service.list_tickets(db_session, zone="North")
        assert [t.id for t in north] == [other.id]

        mine = await service.list_tickets(db_session, accepted_by=CLEANER)
        assert [t.id for t in mine] == [other.id]
