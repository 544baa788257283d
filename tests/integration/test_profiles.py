"""Profile read models and the leaderboard."""

from __future__ import annotations

import pytest

from civiclean.errors import ValidationFailed
from civiclean.gamification.points_service import apply_points_delta
from civiclean.profiles.service import (
    ensure_profile,
    get_leaderboard,
    get_public_profile,
    profile_summary,
    update_profile,
)


async def _user(db, user_id, points, zone="Center", public=True):
    await update_profile(db, user_id, display_name=user_id.title(), zone=zone, public_profile=public)
    await apply_points_delta(db, user_id, points, "test", None, "seed", f"seed:{user_id}")
    await db.commit()


class TestProfiles:

    @pytest.mark.asyncio
    async def test_ensure_profile_creates(self, db_session):
        profile = await ensure_profile(db_session, "fresh")
        summary = profile_summary(profile)
        assert summary["points"] == 0
        assert summary["level"] == 1
        assert summary["level_title"] == "Novato"
        assert summary["stats"]["tickets_reported"] == 0

    @pytest.mark.asyncio
    async def test_private_profile_hidden(self, db_session):
        await _user(db_session, "hidden", 10, public=False)
        assert await get_public_profile(db_session, "hidden") is None
        assert await get_public_profile(db_session, "nobody") is None

    @pytest.mark.asyncio
    async def test_update_validates(self, db_session):
        with pytest.raises(ValidationFailed):
            await update_profile(db_session, "u", zone="Atlantis")
        with pytest.raises(ValidationFailed):
            await update_profile(db_session, "u", display_name="x")


class TestLeaderboard:

    @pytest.mark.asyncio
    async def test_ranked_by_points_public_only(self, db_session):
        await _user(db_session, "ana", 300)
        await _user(db_session, "beto", 900, zone="North")
        await _user(db_session, "caro", 500)
        await _user(db_session, "dani", 5000, public=False)

        board = await get_leaderboard(db_session)
        assert [e["user_id"] for e in board] == ["beto", "caro", "ana"]
        assert [e["rank"] for e in board] == [1, 2, 3]
        assert board[0]["level_title"] == "Experto"

    @pytest.mark.asyncio
    async def test_zone_filter_and_limit(self, db_session):
        await _user(db_session, "ana", 300)
        await _user(db_session, "beto", 900, zone="North")
        await _user(db_session, "caro", 500)

        center = await get_leaderboard(db_session, zone="Center", limit=1)
        assert [e["user_id"] for e in center] == ["caro"]
