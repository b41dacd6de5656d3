"""Integration tests for the XP ledger: at-most-once awards and reconciliation."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func, select, update

from questforge.db.models import SOURCE_QUEST_COMPLETION, SOURCE_WORKOUT_LOG, Profile, XPEvent
from questforge.errors import NotFound, ValidationFailed
from questforge.progression.ledger import (
    award_xp,
    get_total_xp,
    list_xp_events,
    reconcile_total_xp,
)


class TestAwardXP:

    @pytest.mark.asyncio
    async def test_first_award_is_granted(self, db_session, make_profile):
        user = await make_profile()
        result = await award_xp(db_session, user.id, SOURCE_QUEST_COMPLETION, str(uuid.uuid4()), 20)
        await db_session.commit()

        assert result.granted is True
        assert result.total_after == 20
        assert await get_total_xp(db_session, user.id) == 20

    @pytest.mark.asyncio
    async def test_duplicate_award_is_ignored(self, db_session, make_profile):
        """Same (user, source_type, source_id) twice: one row, one increment."""
        user = await make_profile()
        source_id = str(uuid.uuid4())

        first = await award_xp(db_session, user.id, SOURCE_WORKOUT_LOG, source_id, 40)
        await db_session.commit()
        second = await award_xp(db_session, user.id, SOURCE_WORKOUT_LOG, source_id, 40)
        await db_session.commit()

        assert first.granted is True
        assert second.granted is False
        assert second.total_after == 40

        count = (
            await db_session.execute(
                select(func.count()).select_from(XPEvent).where(XPEvent.user_id == user.id)
            )
        ).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_duplicate_from_separate_sessions(self, session_factory, make_profile):
        """A retry arriving on another session still collapses to a single award."""
        user = await make_profile()
        source_id = str(uuid.uuid4())

        async with session_factory() as s1:
            r1 = await award_xp(s1, user.id, SOURCE_QUEST_COMPLETION, source_id, 25)
            await s1.commit()
        async with session_factory() as s2:
            r2 = await award_xp(s2, user.id, SOURCE_QUEST_COMPLETION, source_id, 25)
            await s2.commit()

        assert (r1.granted, r2.granted) == (True, False)
        async with session_factory() as s3:
            assert await get_total_xp(s3, user.id) == 25

    @pytest.mark.asyncio
    async def test_same_source_id_different_type_is_distinct(self, db_session, make_profile):
        user = await make_profile()
        source_id = str(uuid.uuid4())

        a = await award_xp(db_session, user.id, SOURCE_QUEST_COMPLETION, source_id, 10)
        b = await award_xp(db_session, user.id, SOURCE_WORKOUT_LOG, source_id, 40)
        await db_session.commit()

        assert a.granted and b.granted
        assert b.total_after == 50

    @pytest.mark.asyncio
    async def test_session_profile_is_kept_in_step(self, db_session, make_profile):
        user = await make_profile()
        await award_xp(db_session, user.id, SOURCE_QUEST_COMPLETION, str(uuid.uuid4()), 30)
        assert user.total_xp == 30

    @pytest.mark.asyncio
    async def test_unknown_source_type_rejected(self, db_session, make_profile):
        user = await make_profile()
        with pytest.raises(ValidationFailed):
            await award_xp(db_session, user.id, "badge", str(uuid.uuid4()), 10)

    @pytest.mark.asyncio
    async def test_negative_amount_rejected(self, db_session, make_profile):
        user = await make_profile()
        with pytest.raises(ValidationFailed):
            await award_xp(db_session, user.id, SOURCE_WORKOUT_LOG, str(uuid.uuid4()), -1)

    @pytest.mark.asyncio
    async def test_missing_profile(self, db_session):
        with pytest.raises(NotFound):
            await get_total_xp(db_session, str(uuid.uuid4()))


class TestReconcile:

    @pytest.mark.asyncio
    async def test_repairs_drifted_cache(self, db_session, make_profile):
        user = await make_profile()
        await award_xp(db_session, user.id, SOURCE_QUEST_COMPLETION, str(uuid.uuid4()), 20)
        await award_xp(db_session, user.id, SOURCE_WORKOUT_LOG, str(uuid.uuid4()), 40)
        await db_session.execute(
            update(Profile).where(Profile.id == user.id).values(total_xp=999)
        )
        await db_session.commit()

        before, total = await reconcile_total_xp(db_session, user.id)
        await db_session.commit()

        assert (before, total) == (999, 60)
        assert await get_total_xp(db_session, user.id) == 60

    @pytest.mark.asyncio
    async def test_no_drift_is_a_no_op(self, db_session, make_profile):
        user = await make_profile()
        await award_xp(db_session, user.id, SOURCE_QUEST_COMPLETION, str(uuid.uuid4()), 15)
        await db_session.commit()

        assert await reconcile_total_xp(db_session, user.id) == (15, 15)


class TestHistory:

    @pytest.mark.asyncio
    async def test_paginated_history(self, db_session, make_profile):
        user = await make_profile()
        for _ in range(5):
            await award_xp(db_session, user.id, SOURCE_QUEST_COMPLETION, str(uuid.uuid4()), 10)
        await db_session.commit()

        events, total = await list_xp_events(db_session, user.id, page=1, per_page=2)
        assert total == 5
        assert len(events) == 2

        events, _ = await list_xp_events(db_session, user.id, page=3, per_page=2)
        assert len(events) == 1
