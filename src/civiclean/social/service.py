"""Likes and comments on tickets."""

from __future__ import annotations

import html
from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civiclean.db.models import Ticket, TicketComment
from civiclean.db.transaction import unit_of_work
from civiclean.errors import ValidationFailed
from civiclean.gamification import points
from civiclean.gamification.points_service import apply_points_delta, get_or_create_profile
from civiclean.tickets.service import get_ticket

logger = structlog.get_logger()

MAX_COMMENT_LENGTH = 500


@dataclass(frozen=True)
class LikeResult:
    ticket: Ticket
    liked: bool


async def toggle_like(db: AsyncSession, ticket_id: str, caller_id: str) -> LikeResult:
    """Like the ticket, or remove an existing like.

    The reporter is paid once per liker: re-liking after an unlike never
    pays again.
    """
    async with unit_of_work(db):
        ticket = await get_ticket(db, ticket_id)
        liker = await get_or_create_profile(db, caller_id)

        if caller_id in ticket.liked_by:
            ticket.liked_by = [uid for uid in ticket.liked_by if uid != caller_id]
            ticket.likes = max(ticket.likes - 1, 0)
            liked = False
        else:
            ticket.liked_by = [*ticket.liked_by, caller_id]
            ticket.likes += 1
            liker.likes_given += 1
            liked = True
            if caller_id != ticket.reported_by:
                reporter = await get_or_create_profile(db, ticket.reported_by)
                reporter.likes_received += 1
                await apply_points_delta(
                    db, ticket.reported_by, points.LIKE_RECEIVED, "like_received", ticket.id,
                    "Like received", f"like:{ticket.id}:{caller_id}",
                )

    logger.info("ticket_like_toggled", ticket_id=ticket.id, user_id=caller_id, liked=liked)
    return LikeResult(ticket=ticket, liked=liked)


async def add_comment(db: AsyncSession, ticket_id: str, caller_id: str, text: str) -> TicketComment:
    """Post an HTML-escaped comment; the reporter earns points for others' comments."""
    content = (text or "").strip()
    if not content:
        raise ValidationFailed("Comment text is required")
    if len(content) > MAX_COMMENT_LENGTH:
        raise ValidationFailed(f"Comment cannot exceed {MAX_COMMENT_LENGTH} characters")

    async with unit_of_work(db):
        ticket = await get_ticket(db, ticket_id)
        author = await get_or_create_profile(db, caller_id)

        comment = TicketComment(ticket_id=ticket.id, user_id=caller_id, content=html.escape(content))
        db.add(comment)
        await db.flush()

        ticket.comments += 1
        author.comments_given += 1
        if caller_id != ticket.reported_by:
            reporter = await get_or_create_profile(db, ticket.reported_by)
            reporter.comments_received += 1
            await apply_points_delta(
                db, ticket.reported_by, points.COMMENT_RECEIVED, "comment_received", ticket.id,
                "Comment received", f"comment:{comment.id}",
            )

    logger.info("ticket_comment_added", ticket_id=ticket.id, comment_id=comment.id)
    return comment


async def list_comments(
    db: AsyncSession,
    ticket_id: str,
    limit: int = 50,
    offset: int = 0,
) -> list[TicketComment]:
    await get_ticket(db, ticket_id)
    result = await db.execute(
        select(TicketComment)
        .where(TicketComment.ticket_id == ticket_id)
        .order_by(TicketComment.created_at)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
