"""ORM models for the ticket lifecycle and gamification engine.

``tickets``, ``profiles`` and ``user_missions`` carry a ``version`` column wired
as the mapper's ``version_id_col``: every UPDATE is issued as
``... WHERE id = :id AND version = :version`` and a lost race surfaces as
``StaleDataError`` on flush.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from civiclean.db.base import Base, JSONType, enum_column, utcnow
from civiclean.enums import (
    CleaningStatus,
    MissionCategory,
    MissionType,
    Priority,
    TicketSize,
    TicketStatus,
    TicketType,
    ValidationStatus,
)


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class Profile(Base):
    """Gamification state for one identity-provider account."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    zone: Mapped[str | None] = mapped_column(String(16), nullable=True)
    public_profile: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    badges: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    # --- Stats ---
    tickets_reported: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tickets_accepted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tickets_cleaned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tickets_validated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    missions_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes_given: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments_given: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012

    def stats(self) -> dict[str, int]:
        return {
            "tickets_reported": self.tickets_reported,
            "tickets_accepted": self.tickets_accepted,
            "tickets_cleaned": self.tickets_cleaned,
            "tickets_validated": self.tickets_validated,
            "missions_completed": self.missions_completed,
            "likes_given": self.likes_given,
            "likes_received": self.likes_received,
            "comments_given": self.comments_given,
            "comments_received": self.comments_received,
        }


class PointsLedgerEntry(Base):
    """Immutable points transaction log with idempotency key."""

    __tablename__ = "points_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    idempotency_key: Mapped[str] = mapped_column(String(256), unique=True, nullable=False)
    reverses_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------


class Ticket(Base):
    """A reported dirty point moving through the cleanup lifecycle."""

    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str] = mapped_column(String(256), nullable=False)
    zone: Mapped[str | None] = mapped_column(String(16), nullable=True)

    type: Mapped[TicketType] = mapped_column(enum_column(TicketType), nullable=False)
    priority: Mapped[Priority] = mapped_column(enum_column(Priority), nullable=False)
    estimated_size: Mapped[TicketSize] = mapped_column(enum_column(TicketSize), nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        enum_column(TicketStatus), nullable=False, default=TicketStatus.REPORTED, index=True
    )

    reported_by: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id"), nullable=False, index=True)
    accepted_by: Mapped[str | None] = mapped_column(String(64), ForeignKey("profiles.id"), nullable=True)
    validated_by: Mapped[str | None] = mapped_column(String(64), ForeignKey("profiles.id"), nullable=True)

    before_photos: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    after_photos: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    cleaning_status: Mapped[CleaningStatus | None] = mapped_column(enum_column(CleaningStatus), nullable=True)
    points_awarded: Mapped[dict[str, int] | None] = mapped_column(JSONType, nullable=True)

    validation_status: Mapped[ValidationStatus | None] = mapped_column(enum_column(ValidationStatus), nullable=True)
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Scope ledger idempotency keys to one acceptance / one cleaning submission
    acceptance_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cleaning_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    liked_by: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012


class TicketComment(Base):
    __tablename__ = "ticket_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    ticket_id: Mapped[str] = mapped_column(String(36), ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    content: Mapped[str] = mapped_column(String(3000), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Missions
# ---------------------------------------------------------------------------


class Mission(Base):
    """Goal template: reach ``goal`` to earn ``points``."""

    __tablename__ = "missions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    type: Mapped[MissionType] = mapped_column(enum_column(MissionType), nullable=False)
    category: Mapped[MissionCategory] = mapped_column(enum_column(MissionCategory), nullable=False)
    goal: Mapped[int] = mapped_column(Integer, nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    requirements: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class UserMission(Base):
    """Per (user, mission) progress. Frozen once ``completed`` is set."""

    __tablename__ = "user_missions"
    __table_args__ = (
        UniqueConstraint("user_id", "mission_id", name="user_missions_user_id_mission_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    mission_id: Mapped[str] = mapped_column(String(36), ForeignKey("missions.id", ondelete="CASCADE"), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012
