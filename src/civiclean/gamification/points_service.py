"""Points ledger: the single path for every change to a profile's points.

Each delta is written as an immutable ``points_ledger`` row keyed by an
idempotency key, so an award can never be applied twice. After the delta the
level is recomputed from the new total and, for positive awards, the daily
streak is advanced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civiclean.db.models import PointsLedgerEntry, Profile
from civiclean.errors import NotFound
from civiclean.gamification.level_thresholds import compute_level
from civiclean.gamification.streak_service import advance_streak, today_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointsResult:
    amount: int
    streak_bonus: int = 0
    badge_awarded: str | None = None
    level: int = 1
    leveled_up: bool = False


async def get_profile(db: AsyncSession, user_id: str) -> Profile:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise NotFound(f"Profile {user_id} not found")
    return profile


async def get_or_create_profile(db: AsyncSession, user_id: str) -> Profile:
    """Get or create the gamification profile for a verified caller."""
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = Profile(id=user_id, badges=[])
        db.add(profile)
        await db.flush()
    return profile


async def get_ledger_entry(db: AsyncSession, idempotency_key: str) -> PointsLedgerEntry | None:
    result = await db.execute(
        select(PointsLedgerEntry).where(PointsLedgerEntry.idempotency_key == idempotency_key)
    )
    return result.scalar_one_or_none()


async def apply_points_delta(
    db: AsyncSession,
    user_id: str,
    amount: int,
    source: str,
    source_id: str,
    description: str,
    idempotency_key: str,
    activity_date: date | None = None,
) -> PointsResult | None:
    """Apply a points delta. Returns None if the key was already used.

    1. Insert into points_ledger
    2. Update profile.points
    3. Advance the streak (positive awards only) and pay any milestone bonus
    4. Recompute level from the new total
    """
    if await get_ledger_entry(db, idempotency_key) is not None:
        logger.info("Duplicate points award ignored: %s", idempotency_key)
        return None

    profile = await get_or_create_profile(db, user_id)
    db.add(PointsLedgerEntry(
        user_id=user_id,
        amount=amount,
        source=source,
        source_id=source_id,
        description=description,
        idempotency_key=idempotency_key,
    ))

    old_level = profile.level
    profile.points += amount

    streak_bonus = 0
    badge_awarded = None
    if amount > 0:
        streak_bonus, badge_awarded = await _advance_streak(
            db, profile, activity_date or today_utc()
        )

    profile.level = compute_level(profile.points)
    await db.flush()

    if profile.level > old_level:
        logger.info("User %s leveled up: %d -> %d", user_id, old_level, profile.level)

    return PointsResult(
        amount=amount,
        streak_bonus=streak_bonus,
        badge_awarded=badge_awarded,
        level=profile.level,
        leveled_up=profile.level > old_level,
    )


async def _advance_streak(db: AsyncSession, profile: Profile, activity_date: date) -> tuple[int, str | None]:
    """Advance the profile's streak; returns (bonus paid, badge awarded)."""
    update = advance_streak(profile.last_activity_date, profile.streak, profile.badges, activity_date)
    if not update.changed:
        return 0, None

    profile.streak = update.streak
    profile.last_activity_date = update.last_activity_date
    if update.badge_awarded is None:
        return 0, None

    # Badge list is append-only; reassign so the JSON column is marked dirty
    profile.badges = [*profile.badges, update.badge_awarded]

    # Keyed by milestone: paid at most once per user, even after a reset and regrowth
    bonus_key = f"streak:{profile.id}:{update.streak}"
    if await get_ledger_entry(db, bonus_key) is not None:
        return 0, update.badge_awarded

    db.add(PointsLedgerEntry(
        user_id=profile.id,
        amount=update.points_awarded,
        source="streak",
        source_id=str(update.streak),
        description=f"{update.streak}-day streak: {update.badge_awarded}",
        idempotency_key=bonus_key,
    ))
    profile.points += update.points_awarded
    logger.info("Streak milestone %d reached by %s", update.streak, profile.id)
    return update.points_awarded, update.badge_awarded


async def reverse_points(
    db: AsyncSession,
    idempotency_key: str,
    description: str,
) -> int:
    """Exactly undo a previous award by its idempotency key.

    The reversal amount is read from the stored ledger entry, never recomputed,
    so later changes to the points formulas cannot make it drift. A second
    reversal of the same key is a no-op. Returns the number of points removed.
    """
    original = await get_ledger_entry(db, idempotency_key)
    if original is None:
        logger.warning("Nothing to reverse for %s", idempotency_key)
        return 0

    existing = await db.execute(
        select(PointsLedgerEntry).where(PointsLedgerEntry.reverses_key == idempotency_key)
    )
    if existing.scalar_one_or_none() is not None:
        logger.info("Award %s already reversed", idempotency_key)
        return 0

    db.add(PointsLedgerEntry(
        user_id=original.user_id,
        amount=-original.amount,
        source=f"{original.source}_reversal",
        source_id=original.source_id,
        description=description,
        idempotency_key=f"{idempotency_key}:reversal",
        reverses_key=idempotency_key,
    ))

    profile = await get_or_create_profile(db, original.user_id)
    profile.points -= original.amount
    profile.level = compute_level(profile.points)
    await db.flush()
    return original.amount


async def get_points_history(
    db: AsyncSession,
    user_id: str,
    limit: int = 50,
    offset: int = 0,
) -> list[PointsLedgerEntry]:
    result = await db.execute(
        select(PointsLedgerEntry)
        .where(PointsLedgerEntry.user_id == user_id)
        .order_by(PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())
