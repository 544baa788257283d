"""Pydantic request/response models for mission endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from civiclean.enums import MissionCategory, MissionType


class MissionResponse(BaseModel):
    id: str
    title: str
    description: str
    icon: str | None = None
    type: MissionType
    category: MissionCategory
    goal: int
    points: int
    requirements: dict[str, Any] = {}
    expires_at: datetime | None = None

    model_config = {"from_attributes": True}


class MissionListResponse(BaseModel):
    missions: list[MissionResponse]


class UserMissionResponse(BaseModel):
    mission_id: str
    progress: int
    completed: bool
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class MyMissionEntry(BaseModel):
    mission: MissionResponse
    progress: int = 0
    completed: bool = False
    completed_at: datetime | None = None


class MyMissionsResponse(BaseModel):
    missions: list[MyMissionEntry]


class ProgressRequest(BaseModel):
    amount: int = Field(1, ge=1, le=1000)


class ProgressResponse(BaseModel):
    user_mission: UserMissionResponse
    already_completed: bool = False
