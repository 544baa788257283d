"""Profile and leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civiclean.auth.dependencies import get_current_caller
from civiclean.database import get_session
from civiclean.dependencies import run_engine_op
from civiclean.gamification.points_service import get_points_history
from civiclean.profiles.schemas import (
    LeaderboardEntry,
    LeaderboardResponse,
    PointsHistoryEntry,
    PointsHistoryResponse,
    ProfileResponse,
    UpdateProfileRequest,
)
from civiclean.profiles.service import (
    MAX_LEADERBOARD,
    ensure_profile,
    get_leaderboard,
    get_public_profile,
    profile_summary,
    update_profile,
)

router = APIRouter(prefix="/api/v1", tags=["Profiles"])


@router.get("/profiles/me", response_model=ProfileResponse)
async def get_my_profile(
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    profile = await run_engine_op(lambda: ensure_profile(db, caller_id))
    return ProfileResponse(**profile_summary(profile))


@router.patch("/profiles/me", response_model=ProfileResponse)
async def patch_my_profile(
    body: UpdateProfileRequest,
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    profile = await run_engine_op(
        lambda: update_profile(
            db,
            caller_id,
            display_name=body.display_name,
            zone=body.zone,
            public_profile=body.public_profile,
        )
    )
    return ProfileResponse(**profile_summary(profile))


@router.get("/profiles/me/points", response_model=PointsHistoryResponse)
async def get_my_points(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    caller_id: str = Depends(get_current_caller),
    db: AsyncSession = Depends(get_session),
) -> PointsHistoryResponse:
    """The caller's points ledger, newest first."""
    entries = await get_points_history(db, caller_id, limit=limit, offset=offset)
    return PointsHistoryResponse(
        entries=[PointsHistoryEntry.model_validate(e) for e in entries],
        limit=limit,
        offset=offset,
    )


@router.get("/profiles/{user_id}", response_model=ProfileResponse)
async def get_profile(user_id: str, db: AsyncSession = Depends(get_session)) -> ProfileResponse:
    """Public profile. Private and missing profiles both answer 404."""
    profile = await get_public_profile(db, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return ProfileResponse(**profile)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    zone: str | None = Query(None),
    limit: int = Query(10, ge=1, le=MAX_LEADERBOARD),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    entries = await get_leaderboard(db, zone=zone, limit=limit)
    return LeaderboardResponse(entries=[LeaderboardEntry(**e) for e in entries], zone=zone)
