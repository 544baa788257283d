"""Mission templates and per-user progress tracking.

Progress is idempotent once a mission is completed: further increments are
rejected with ``AlreadyCompleted`` carrying the frozen row, and the reward is
paid through the points ledger under ``mission:<mission>:<user>``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civiclean.db.base import utcnow
from civiclean.db.models import Mission, UserMission
from civiclean.db.transaction import unit_of_work
from civiclean.enums import MissionCategory, MissionType
from civiclean.errors import AlreadyCompleted, NotFound, ValidationFailed
from civiclean.gamification.points_service import apply_points_delta, get_or_create_profile

logger = logging.getLogger(__name__)

# Missions roll over at 03:00 UTC
ROLLOVER_HOUR = 3

MISSION_TEMPLATES: dict[MissionType, list[dict]] = {
    MissionType.DAILY: [
        {
            "title": "Reportar un punto sucio",
            "description": "Encuentra y reporta un lugar que necesite limpieza en tu zona",
            "icon": "\U0001f4cd",
            "category": MissionCategory.REPORTER,
            "points": 50,
            "goal": 1,
            "requirements": {"minPhotos": 1, "mustHaveLocation": True},
        },
        {
            "title": "Acepta un reto de limpieza",
            "description": "Acepta al menos un ticket reportado por otro usuario",
            "icon": "✋",
            "category": MissionCategory.CLEANER,
            "points": 30,
            "goal": 1,
            "requirements": {"mustBeOthersTicket": True},
        },
        {
            "title": "Valida una limpieza",
            "description": "Valida un ticket que hayas reportado y fue limpiado",
            "icon": "✅",
            "category": MissionCategory.VALIDATOR,
            "points": 40,
            "goal": 1,
            "requirements": {"mustBeOwnTicket": True, "ticketStatus": "validating"},
        },
    ],
    MissionType.WEEKLY: [
        {
            "title": "Limpiador Semanal",
            "description": "Completa la limpieza de 5 tickets esta semana",
            "icon": "\U0001f9f9",
            "category": MissionCategory.CLEANER,
            "points": 300,
            "goal": 5,
            "requirements": {"cleaningStatus": "complete"},
        },
        {
            "title": "Explorador Urbano",
            "description": "Reporta 10 puntos sucios en diferentes zonas",
            "icon": "\U0001f50d",
            "category": MissionCategory.REPORTER,
            "points": 250,
            "goal": 10,
            "requirements": {"uniqueZones": 3},
        },
        {
            "title": "Comunidad Activa",
            "description": "Da 20 likes y comenta en 5 tickets de otros usuarios",
            "icon": "\U0001f4ac",
            "category": MissionCategory.SOCIAL,
            "points": 100,
            "goal": 25,
            "requirements": {"likes": 20, "comments": 5},
        },
    ],
}


def mission_expiry(mission_type: MissionType, now: datetime) -> datetime:
    """Next rollover: tomorrow (daily) or in a week (weekly) at 03:00 UTC."""
    days = 1 if mission_type is MissionType.DAILY else 7
    return (now + timedelta(days=days)).replace(hour=ROLLOVER_HOUR, minute=0, second=0, microsecond=0)


def is_expired(mission: Mission, now: datetime | None = None) -> bool:
    if mission.expires_at is None:
        return False
    expires_at = mission.expires_at
    if expires_at.tzinfo is None:
        # SQLite drops tzinfo; stored values are always UTC
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at <= (now or utcnow())


async def get_mission(db: AsyncSession, mission_id: str) -> Mission:
    mission = await db.get(Mission, mission_id)
    if mission is None:
        raise NotFound(f"Mission {mission_id} not found")
    return mission


async def seed_missions(
    db: AsyncSession,
    mission_type: MissionType | None = None,
    now: datetime | None = None,
) -> int:
    """Insert the mission templates that have no active instance. Returns rows added.

    Safe to run repeatedly: a template is only inserted again once its
    previous instance has expired.
    """
    now = now or utcnow()
    types = [mission_type] if mission_type is not None else list(MISSION_TEMPLATES)
    active = await list_missions(db, now=now)
    live = {(m.type, m.title) for m in active}

    seeded = 0
    async with unit_of_work(db):
        for kind in types:
            expires_at = mission_expiry(kind, now)
            for template in MISSION_TEMPLATES.get(kind, []):
                if (kind, template["title"]) in live:
                    continue
                db.add(Mission(type=kind, expires_at=expires_at, **template))
                seeded += 1

    logger.info("Seeded %d missions", seeded)
    return seeded


async def list_missions(
    db: AsyncSession,
    mission_type: MissionType | None = None,
    category: MissionCategory | None = None,
    include_expired: bool = False,
    now: datetime | None = None,
) -> list[Mission]:
    stmt = select(Mission)
    if mission_type is not None:
        stmt = stmt.where(Mission.type == mission_type)
    if category is not None:
        stmt = stmt.where(Mission.category == category)
    result = await db.execute(stmt.order_by(Mission.created_at, Mission.title))
    missions = list(result.scalars().all())
    if include_expired:
        return missions
    return [m for m in missions if not is_expired(m, now)]


async def list_user_missions(
    db: AsyncSession,
    user_id: str,
    now: datetime | None = None,
) -> list[tuple[Mission, UserMission | None]]:
    """Active missions paired with the caller's progress row (if any)."""
    missions = await list_missions(db, now=now)
    result = await db.execute(select(UserMission).where(UserMission.user_id == user_id))
    progress = {um.mission_id: um for um in result.scalars().all()}
    return [(m, progress.get(m.id)) for m in missions]


async def get_user_mission(db: AsyncSession, user_id: str, mission_id: str) -> UserMission | None:
    result = await db.execute(
        select(UserMission).where(
            UserMission.user_id == user_id,
            UserMission.mission_id == mission_id,
        )
    )
    return result.scalar_one_or_none()


async def increment_progress(
    db: AsyncSession,
    mission_id: str,
    user_id: str,
    amount: int = 1,
    now: datetime | None = None,
) -> UserMission:
    """Add ``amount`` to the caller's progress, completing the mission at its goal.

    Raises:
        ValidationFailed: amount < 1, or the mission has expired.
        NotFound: unknown mission.
        AlreadyCompleted: the mission was completed earlier; nothing changes.
    """
    if amount < 1:
        raise ValidationFailed("Progress amount must be at least 1")

    now = now or utcnow()
    async with unit_of_work(db):
        mission = await get_mission(db, mission_id)
        if is_expired(mission, now):
            raise ValidationFailed(f"Mission {mission_id} has expired")

        user_mission = await get_user_mission(db, user_id, mission_id)
        frozen = user_mission is not None and user_mission.completed
        if not frozen:
            user_mission = await _advance(db, mission, user_id, user_mission, amount, now)

    if frozen:
        # Outside the transaction: a rollback would expire the loaded row
        raise AlreadyCompleted(user_mission)
    return user_mission


async def _advance(
    db: AsyncSession,
    mission: Mission,
    user_id: str,
    user_mission: UserMission | None,
    amount: int,
    now: datetime,
) -> UserMission:
    profile = await get_or_create_profile(db, user_id)
    if user_mission is None:
        user_mission = UserMission(user_id=user_id, mission_id=mission.id, progress=0, completed=False)
        db.add(user_mission)

    user_mission.progress = min(user_mission.progress + amount, mission.goal)
    if user_mission.progress >= mission.goal:
        user_mission.completed = True
        user_mission.completed_at = now
        profile.missions_completed += 1
        await apply_points_delta(
            db, user_id, mission.points, "mission", mission.id,
            f"Mission completed: {mission.title}", f"mission:{mission.id}:{user_id}",
            now.date(),
        )
        logger.info("Mission %s completed by %s", mission.id, user_id)
    else:
        await db.flush()

    return user_mission
