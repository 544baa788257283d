"""Profile read models, profile settings and the points leaderboard.

Private profiles are indistinguishable from missing ones to other callers
(both return None -> HTTP 404).
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civiclean.db.models import Profile
from civiclean.db.transaction import unit_of_work
from civiclean.enums import Zone
from civiclean.errors import ValidationFailed
from civiclean.gamification.level_thresholds import level_info
from civiclean.gamification.points_service import get_or_create_profile
from civiclean.gamification.streak_service import has_active_streak

MAX_LEADERBOARD = 100


def profile_summary(profile: Profile) -> dict:
    """Full gamification view of a profile (owner's view)."""
    info = level_info(profile.points)
    return {
        "id": profile.id,
        "display_name": profile.display_name,
        "zone": profile.zone,
        "public_profile": profile.public_profile,
        "points": profile.points,
        "level": info["level"],
        "level_title": info["title"],
        "points_into_level": info["points_into_level"],
        "points_for_level": info["points_for_level"],
        "next_level": info["next_level"],
        "streak": profile.streak if has_active_streak(profile.last_activity_date) else 0,
        "last_activity_date": profile.last_activity_date,
        "badges": list(profile.badges),
        "stats": profile.stats(),
        "created_at": profile.created_at,
    }


async def ensure_profile(db: AsyncSession, user_id: str) -> Profile:
    """Return the caller's profile, creating it on first contact."""
    async with unit_of_work(db):
        profile = await get_or_create_profile(db, user_id)
    return profile


async def get_public_profile(db: AsyncSession, user_id: str) -> dict | None:
    profile = await db.get(Profile, user_id)
    if profile is None or not profile.public_profile:
        return None
    return profile_summary(profile)


async def update_profile(
    db: AsyncSession,
    user_id: str,
    display_name: str | None = None,
    zone: str | None = None,
    public_profile: bool | None = None,
) -> Profile:
    async with unit_of_work(db):
        profile = await get_or_create_profile(db, user_id)
        if display_name is not None:
            display_name = display_name.strip()
            if not 2 <= len(display_name) <= 64:
                raise ValidationFailed("Display name must be between 2 and 64 characters")
            profile.display_name = display_name
        if zone is not None:
            try:
                profile.zone = Zone(zone).value
            except ValueError:
                raise ValidationFailed(f"Invalid zone: {zone!r}") from None
        if public_profile is not None:
            profile.public_profile = public_profile
    return profile


async def get_leaderboard(
    db: AsyncSession,
    zone: str | None = None,
    limit: int = 10,
) -> list[dict]:
    """Public profiles ranked by points (ties broken by earliest sign-up)."""
    limit = max(1, min(limit, MAX_LEADERBOARD))
    stmt = select(Profile).where(Profile.public_profile.is_(True))
    if zone is not None:
        stmt = stmt.where(Profile.zone == zone)
    stmt = stmt.order_by(Profile.points.desc(), Profile.created_at).limit(limit)
    result = await db.execute(stmt)

    return [
        {
            "rank": rank,
            "user_id": profile.id,
            "display_name": profile.display_name,
            "zone": profile.zone,
            "points": profile.points,
            "level": profile.level,
            "level_title": level_info(profile.points)["title"],
            "tickets_cleaned": profile.tickets_cleaned,
        }
        for rank, profile in enumerate(result.scalars().all(), start=1)
    ]
