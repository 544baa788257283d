"""Pydantic request/response models for profile and leaderboard endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class ProfileStats(BaseModel):
    tickets_reported: int = 0
    tickets_accepted: int = 0
    tickets_cleaned: int = 0
    tickets_validated: int = 0
    missions_completed: int = 0
    likes_given: int = 0
    likes_received: int = 0
    comments_given: int = 0
    comments_received: int = 0


class ProfileResponse(BaseModel):
    id: str
    display_name: str | None = None
    zone: str | None = None
    public_profile: bool = True
    points: int
    level: int
    level_title: str
    points_into_level: int
    points_for_level: int
    next_level: int
    streak: int
    last_activity_date: date | None = None
    badges: list[str] = []
    stats: ProfileStats
    created_at: datetime


class UpdateProfileRequest(BaseModel):
    display_name: str | None = Field(None, max_length=64)
    zone: str | None = None
    public_profile: bool | None = None


class PointsHistoryEntry(BaseModel):
    id: int
    amount: int
    source: str
    source_id: str | None = None
    description: str | None = None
    reverses_key: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PointsHistoryResponse(BaseModel):
    entries: list[PointsHistoryEntry]
    limit: int
    offset: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    display_name: str | None = None
    zone: str | None = None
    points: int
    level: int
    level_title: str
    tickets_cleaned: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    zone: str | None = None
