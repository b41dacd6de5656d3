"""Integration tests for the group leaderboard."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from questforge.config import get_settings
from questforge.db.models import SOURCE_QUEST_COMPLETION, SOURCE_WORKOUT_LOG
from questforge.errors import AuthorizationError, NotFound, ValidationFailed
from questforge.guilds.leaderboard import get_leaderboard
from questforge.guilds.service import create_guild, join_guild_by_code
from questforge.progression.ledger import award_xp

# Wednesday of ISO week 2026-W09 (Monday 2026-02-23)
NOW = datetime(2026, 2, 25, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def guild_of(db_session, make_profile):
    """Factory: owner + members in one guild. Returns (group, [profiles])."""

    async def _build(*names: str):
        profiles = [await make_profile(username=n.lower(), display_name=n) for n in names]
        group = await create_guild(db_session, profiles[0], "Leaderboard Guild")
        for member in profiles[1:]:
            await join_guild_by_code(db_session, member, group.invite_code)
        await db_session.commit()
        return group, profiles

    return _build


async def _grant(db, user, amount: int, at: datetime, source=SOURCE_QUEST_COMPLETION):
    await award_xp(db, user.id, source, str(uuid.uuid4()), amount, now=at)


class TestLeaderboard:

    @pytest.mark.asyncio
    async def test_every_member_appears_once(self, db_session, guild_of):
        """A member with no XP is listed with 0."""
        group, (a, b, c) = await guild_of("Alpha", "Bravo", "Charlie")
        await _grant(db_session, a, 30, NOW)
        await _grant(db_session, a, 10, NOW, source=SOURCE_WORKOUT_LOG)
        await _grant(db_session, b, 20, NOW)
        await db_session.commit()

        entries = await get_leaderboard(db_session, a, group.id, "all_time", now=NOW)

        assert [(e["display_name"], e["xp"], e["rank"]) for e in entries] == [
            ("Alpha", 40, 1),
            ("Bravo", 20, 2),
            ("Charlie", 0, 3),
        ]
        assert len({e["user_id"] for e in entries}) == 3

    @pytest.mark.asyncio
    async def test_ties_ordered_by_name_with_dense_rank(self, db_session, guild_of):
        group, (z, y, x) = await guild_of("Zed", "Amy", "Bob")
        await _grant(db_session, z, 50, NOW)
        await _grant(db_session, y, 50, NOW)
        await _grant(db_session, x, 10, NOW)
        await db_session.commit()

        entries = await get_leaderboard(db_session, z, group.id, "all_time", now=NOW)
        assert [(e["display_name"], e["rank"]) for e in entries] == [("Amy", 1), ("Zed", 1), ("Bob", 2)]

    @pytest.mark.asyncio
    async def test_weekly_window_starts_monday(self, db_session, guild_of):
        group, (a, b) = await guild_of("Alpha", "Bravo")
        monday = datetime(2026, 2, 23, 0, 0, tzinfo=timezone.utc)
        await _grant(db_session, a, 100, monday - timedelta(seconds=1))  # last Sunday
        await _grant(db_session, a, 5, monday)
        await _grant(db_session, b, 20, monday + timedelta(days=1))
        await db_session.commit()

        weekly = await get_leaderboard(db_session, a, group.id, "weekly", now=NOW)
        assert [(e["display_name"], e["xp"]) for e in weekly] == [("Bravo", 20), ("Alpha", 5)]

        all_time = await get_leaderboard(db_session, a, group.id, "all_time", now=NOW)
        assert [(e["display_name"], e["xp"]) for e in all_time] == [("Alpha", 105), ("Bravo", 20)]

    @pytest.mark.asyncio
    async def test_xp_earned_before_joining_counts(self, db_session, guild_of, make_profile):
        group, (a,) = await guild_of("Alpha")
        late = await make_profile(username="late", display_name="Late")
        await _grant(db_session, late, 70, NOW)
        await join_guild_by_code(db_session, late, group.invite_code)
        await db_session.commit()

        entries = await get_leaderboard(db_session, a, group.id, "all_time", now=NOW)
        assert entries[0]["display_name"] == "Late"
        assert entries[0]["xp"] == 70

    @pytest.mark.asyncio
    async def test_display_name_fallbacks(self, db_session, make_profile):
        owner = await make_profile(username="owner")
        anon = await make_profile()
        group = await create_guild(db_session, owner, "Fallback Guild")
        await join_guild_by_code(db_session, anon, group.invite_code)
        await db_session.commit()

        entries = await get_leaderboard(db_session, owner, group.id, "all_time", now=NOW)
        names = {e["user_id"]: e["display_name"] for e in entries}
        assert names[owner.id] == "owner"
        assert names[anon.id].startswith("Hunter#")

    @pytest.mark.asyncio
    async def test_non_member_rejected(self, db_session, guild_of, make_profile):
        group, _ = await guild_of("Alpha")
        stranger = await make_profile(username="stranger")
        with pytest.raises(AuthorizationError):
            await get_leaderboard(db_session, stranger, group.id, "weekly", now=NOW)

    @pytest.mark.asyncio
    async def test_non_member_allowed_when_reads_relaxed(self, db_session, guild_of, make_profile, monkeypatch):
        group, _ = await guild_of("Alpha")
        stranger = await make_profile(username="stranger")
        monkeypatch.setattr(get_settings(), "guild_reads_members_only", False)

        entries = await get_leaderboard(db_session, stranger, group.id, "weekly", now=NOW)
        assert [e["display_name"] for e in entries] == ["Alpha"]

    @pytest.mark.asyncio
    async def test_unknown_group_not_found(self, db_session, make_profile):
        user = await make_profile()
        with pytest.raises(NotFound):
            await get_leaderboard(db_session, user, str(uuid.uuid4()), "weekly", now=NOW)

    @pytest.mark.asyncio
    async def test_unknown_timeframe_rejected(self, db_session, guild_of):
        group, (a,) = await guild_of("Alpha")
        with pytest.raises(ValidationFailed):
            await get_leaderboard(db_session, a, group.id, "monthly", now=NOW)
