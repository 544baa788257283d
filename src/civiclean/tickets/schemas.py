"""Pydantic request/response models for ticket endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from civiclean.enums import (
    CleaningStatus,
    Priority,
    TicketSize,
    TicketStatus,
    TicketType,
    ValidationStatus,
)


class CreateTicketRequest(BaseModel):
    title: str = Field(..., max_length=100)
    description: str = Field(..., max_length=1000)
    latitude: float
    longitude: float
    address: str = Field(..., max_length=256)
    zone: str | None = None
    type: TicketType
    priority: Priority = Priority.MEDIUM
    estimated_size: TicketSize = TicketSize.MEDIUM
    before_photos: list[str] = Field(default_factory=list)


class CompleteTicketRequest(BaseModel):
    after_photos: list[str] = Field(default_factory=list)
    cleaning_status: CleaningStatus


class ValidateTicketRequest(BaseModel):
    approved: bool
    message: str | None = Field(None, max_length=500)


class CommentRequest(BaseModel):
    text: str = Field(..., max_length=2000)


class TicketResponse(BaseModel):
    id: str
    title: str
    description: str
    latitude: float
    longitude: float
    address: str
    zone: str | None = None
    type: TicketType
    priority: Priority
    estimated_size: TicketSize
    status: TicketStatus
    reported_by: str
    accepted_by: str | None = None
    validated_by: str | None = None
    before_photos: list[str] = []
    after_photos: list[str] = []
    cleaning_status: CleaningStatus | None = None
    points_awarded: dict[str, int] | None = None
    validation_status: ValidationStatus | None = None
    validated_at: datetime | None = None
    rejection_reason: str | None = None
    likes: int = 0
    comments: int = 0
    liked_by: list[str] = []
    created_at: datetime
    updated_at: datetime
    accepted_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class TicketListResponse(BaseModel):
    tickets: list[TicketResponse]
    limit: int
    offset: int


class LikeResponse(BaseModel):
    liked: bool
    likes: int


class CommentResponse(BaseModel):
    id: str
    ticket_id: str
    user_id: str
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]
