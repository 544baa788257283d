"""Daily activity streaks and milestone rewards.

Pure computation over a profile's ``last_activity_date``, ``streak`` and
``badges``; persisting the result is done by ``apply_points_delta``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone

# streak length -> (bonus points, badge)
STREAK_REWARDS: dict[int, tuple[int, str]] = {
    3: (50, "Constante"),
    7: (150, "Comprometido"),
    14: (350, "Dedicado"),
    30: (1000, "Imparable"),
    60: (2500, "Leyenda Verde"),
}


@dataclass(frozen=True)
class StreakUpdate:
    streak: int
    points_awarded: int
    badge_awarded: str | None
    last_activity_date: date | None
    changed: bool


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def advance_streak(
    last_activity_date: date | None,
    streak: int,
    badges: list[str],
    activity_date: date,
) -> StreakUpdate:
    """Advance a streak for an activity on ``activity_date``.

    - same day (or an activity dated before the last one): no change
    - next calendar day: streak + 1, milestone bonus if its badge is new
    - any larger gap, or no previous activity: streak restarts at 1
    """
    if last_activity_date is not None:
        gap = (activity_date - last_activity_date).days
        if gap <= 0:
            return StreakUpdate(streak, 0, None, last_activity_date, changed=False)
        if gap == 1:
            new_streak = streak + 1
            reward = STREAK_REWARDS.get(new_streak)
            if reward is not None and reward[1] not in badges:
                points, badge = reward
                return StreakUpdate(new_streak, points, badge, activity_date, changed=True)
            return StreakUpdate(new_streak, 0, None, activity_date, changed=True)

    return StreakUpdate(1, 0, None, activity_date, changed=True)


def has_active_streak(last_activity_date: date | None, today: date | None = None) -> bool:
    """True while the streak can still be extended (active today or yesterday)."""
    if last_activity_date is None:
        return False
    today = today or today_utc()
    return (today - last_activity_date).days <= 1
