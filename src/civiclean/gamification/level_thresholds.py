"""Level thresholds and computation.

Levels are a pure step function of cumulative points. The level stored on a
profile is always recomputed from the post-update points, never incremented
on its own.
"""

from __future__ import annotations

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 1, "title": "Novato", "cumulative": 0},
    {"level": 2, "title": "Novato", "cumulative": 50},
    {"level": 3, "title": "Aprendiz", "cumulative": 100},
    {"level": 4, "title": "Aprendiz", "cumulative": 300},
    {"level": 5, "title": "Experto", "cumulative": 500},
    {"level": 6, "title": "Experto", "cumulative": 1000},
    {"level": 7, "title": "Maestro", "cumulative": 1500},
    {"level": 8, "title": "Maestro", "cumulative": 2500},
    {"level": 9, "title": "Leyenda", "cumulative": 4000},
]

MAX_LEVEL = LEVEL_THRESHOLDS[-1]["level"]


def compute_level(points: int) -> int:
    """Map cumulative points to a level number (1..9)."""
    level = LEVEL_THRESHOLDS[0]["level"]
    for entry in LEVEL_THRESHOLDS:
        if points >= entry["cumulative"]:
            level = entry["level"]
        else:
            break
    return level


def level_info(points: int) -> dict:
    """Level, title and progress towards the next level."""
    level = compute_level(points)
    current = LEVEL_THRESHOLDS[level - 1]
    next_level = LEVEL_THRESHOLDS[min(level, MAX_LEVEL - 1)]

    points_into_level = points - current["cumulative"]
    points_for_level = next_level["cumulative"] - current["cumulative"]

    # At max level, avoid division by zero
    if points_for_level <= 0:
        points_for_level = 1

    return {
        "level": level,
        "title": current["title"],
        "points_into_level": points_into_level,
        "points_for_level": points_for_level,
        "next_level": next_level["level"],
        "next_title": next_level["title"],
    }
