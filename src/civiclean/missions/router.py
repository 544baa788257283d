"""Mission API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civiclean.auth.dependencies import get_current_caller
from civiclean.database import get_session
from civiclean.dependencies import run_engine_op
from civiclean.enums import MissionCategory, MissionType
from civiclean.errors import AlreadyCompleted
from civiclean.missions.schemas import (
    MissionListResponse,
    MissionResponse,
    MyMissionEntry,
    MyMissionsResponse,
    ProgressRequest,
    ProgressResponse,
    UserMissionResponse,
)
from civiclean.missions.service import increment_progress, list_missions, list_user_missions

router = APIRouter(prefix="/api/v1/missions", tags=["Missions"])


@router.get("", response_model=MissionListResponse)
async def get_missions(
    type: MissionType | None = Query(None),  # noqa: A002
    category: MissionCategory | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> MissionListResponse:
    """Active (unexpired) missions."""
    missions = await list_missions(db, mission_type=type, category=category)
    return MissionListResponse(missions=[MissionResponse.model_validate(m) for m in missions])


@router.get("/me", response_model=MyMissionsResponse)
async def get_my_missions(
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> MyMissionsResponse:
    """Active missions with the caller's progress."""
    entries = []
    for mission, user_mission in await list_user_missions(db, caller_id):
        entries.append(MyMissionEntry(
            mission=MissionResponse.model_validate(mission),
            progress=user_mission.progress if user_mission else 0,
            completed=user_mission.completed if user_mission else False,
            completed_at=user_mission.completed_at if user_mission else None,
        ))
    return MyMissionsResponse(missions=entries)


@router.post("/{mission_id}/progress", response_model=ProgressResponse)
async def post_progress(
    mission_id: str,
    body: ProgressRequest,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> ProgressResponse:
    """Increment progress. A completed mission answers 200 with ``already_completed``."""
    try:
        user_mission = await run_engine_op(lambda: increment_progress(db, mission_id, caller_id, body.amount))
    except AlreadyCompleted as exc:
        return ProgressResponse(
            user_mission=UserMissionResponse.model_validate(exc.user_mission),
            already_completed=True,
        )
    return ProgressResponse(user_mission=UserMissionResponse.model_validate(user_mission))
