"""Ticket API endpoints: lifecycle actions, likes and comments."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civiclean.auth.dependencies import get_current_caller
from civiclean.database import get_session
from civiclean.dependencies import photo_store_dep, run_engine_op
from civiclean.enums import TicketStatus, TicketType
from civiclean.social.service import add_comment, list_comments, toggle_like
from civiclean.storage.photo_store import BasePhotoStore
from civiclean.tickets import service
from civiclean.tickets.schemas import (
    CommentListResponse,
    CommentRequest,
    CommentResponse,
    CompleteTicketRequest,
    CreateTicketRequest,
    LikeResponse,
    TicketListResponse,
    TicketResponse,
    ValidateTicketRequest,
)

router = APIRouter(prefix="/api/v1/tickets", tags=["Tickets"])


# ── Read models ──


@router.get("", response_model=TicketListResponse)
async def list_tickets(
    status: TicketStatus | None = Query(None),
    zone: str | None = Query(None),
    type: TicketType | None = Query(None),  # noqa: A002
    reported_by: str | None = Query(None),
    accepted_by: str | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),
) -> TicketListResponse:
    tickets = await service.list_tickets(
        db,
        status=status,
        zone=zone,
        ticket_type=type,
        reported_by=reported_by,
        accepted_by=accepted_by,
        limit=limit,
        offset=offset,
    )
    return TicketListResponse(
        tickets=[TicketResponse.model_validate(t) for t in tickets],
        limit=limit,
        offset=offset,
    )


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: str, db: AsyncSession = Depends(get_session)) -> TicketResponse:
    return TicketResponse.model_validate(await service.get_ticket(db, ticket_id))


@router.get("/{ticket_id}/comments", response_model=CommentListResponse)
async def get_comments(
    ticket_id: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),
) -> CommentListResponse:
    comments = await list_comments(db, ticket_id, limit=limit, offset=offset)
    return CommentListResponse(comments=[CommentResponse.model_validate(c) for c in comments])


# ── Lifecycle actions ──


@router.post("", response_model=TicketResponse, status_code=201)
async def report_ticket(
    body: CreateTicketRequest,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
    photo_store: BasePhotoStore = Depends(photo_store_dep),
) -> TicketResponse:
    ticket = await run_engine_op(
        lambda: service.report_ticket(
            db,
            caller_id,
            title=body.title,
            description=body.description,
            latitude=body.latitude,
            longitude=body.longitude,
            address=body.address,
            zone=body.zone,
            ticket_type=body.type,
            priority=body.priority,
            estimated_size=body.estimated_size,
            before_photos=body.before_photos,
            photo_store=photo_store,
        )
    )
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/accept", response_model=TicketResponse)
async def accept_ticket(
    ticket_id: str,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> TicketResponse:
    ticket = await run_engine_op(lambda: service.accept_ticket(db, ticket_id, caller_id))
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/start", response_model=TicketResponse)
async def start_ticket(
    ticket_id: str,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> TicketResponse:
    ticket = await run_engine_op(lambda: service.start_cleaning(db, ticket_id, caller_id))
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/abandon", response_model=TicketResponse)
async def abandon_ticket(
    ticket_id: str,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> TicketResponse:
    ticket = await run_engine_op(lambda: service.abandon_ticket(db, ticket_id, caller_id))
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/complete", response_model=TicketResponse)
async def complete_ticket(
    ticket_id: str,
    body: CompleteTicketRequest,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
    photo_store: BasePhotoStore = Depends(photo_store_dep),
) -> TicketResponse:
    ticket = await run_engine_op(
        lambda: service.complete_ticket(
            db, ticket_id, caller_id, body.after_photos, body.cleaning_status, photo_store=photo_store
        )
    )
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/validate", response_model=TicketResponse)
async def validate_ticket(
    ticket_id: str,
    body: ValidateTicketRequest,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
    photo_store: BasePhotoStore = Depends(photo_store_dep),
) -> TicketResponse:
    ticket = await run_engine_op(
        lambda: service.validate_ticket(
            db, ticket_id, caller_id, body.approved, body.message, photo_store=photo_store
        )
    )
    return TicketResponse.model_validate(ticket)


@router.post("/{ticket_id}/retry", response_model=TicketResponse)
async def retry_ticket(
    ticket_id: str,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> TicketResponse:
    ticket = await run_engine_op(lambda: service.retry_cleaning(db, ticket_id, caller_id))
    return TicketResponse.model_validate(ticket)


# ── Social ──


@router.post("/{ticket_id}/like", response_model=LikeResponse)
async def like_ticket(
    ticket_id: str,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> LikeResponse:
    result = await run_engine_op(lambda: toggle_like(db, ticket_id, caller_id))
    return LikeResponse(liked=result.liked, likes=result.ticket.likes)


@router.post("/{ticket_id}/comments", response_model=CommentResponse, status_code=201)
async def comment_ticket(
    ticket_id: str,
    body: CommentRequest,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> CommentResponse:
    comment = await run_engine_op(lambda: add_comment(db, ticket_id, caller_id, body.text))
    return CommentResponse.model_validate(comment)
