"""Integration tests for workout logs, XP awards and streaks."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from questforge.db.models import PATH_HEAVENLY_DEMON, SelectedWorkoutPlan, WorkoutLog, XPEvent
from questforge.errors import NotFound, PathMismatch, ValidationFailed
from questforge.workouts.service import (
    RUN_BONUS_FLAG,
    WALK_BONUS_FLAG,
    get_selected_plan,
    list_workout_logs,
    list_workout_plans,
    log_workout,
    select_workout_plan,
)

TODAY = date(2026, 3, 10)


class TestLogWorkout:

    @pytest.mark.asyncio
    async def test_completed_day_awards_base_xp(self, db_session, make_profile):
        user = await make_profile()
        result = await log_workout(db_session, user, TODAY, True, today=TODAY)
        await db_session.commit()

        assert result.awarded_xp == 40
        assert result.bonus_xp == 0
        assert result.total_xp == 40
        assert result.current_streak == 1
        assert user.last_workout_date == TODAY

    @pytest.mark.asyncio
    async def test_bonus_flags_add_xp(self, db_session, make_profile):
        user = await make_profile()
        payload = {WALK_BONUS_FLAG: True, RUN_BONUS_FLAG: True}
        result = await log_workout(db_session, user, TODAY, True, payload=payload, today=TODAY)
        await db_session.commit()

        assert result.awarded_xp == 65
        assert result.bonus_xp == 25

    @pytest.mark.asyncio
    async def test_relog_same_day_awards_once(self, db_session, make_profile):
        """Re-logging overwrites the row; XP keyed by its id is granted once."""
        user = await make_profile()
        first = await log_workout(db_session, user, TODAY, True, payload={"note": "a"}, today=TODAY)
        await db_session.commit()
        second = await log_workout(db_session, user, TODAY, True, payload={"note": "b"}, today=TODAY)
        await db_session.commit()

        assert first.log_id == second.log_id
        assert second.awarded_xp == 0
        assert second.total_xp == 40

        log = (await db_session.execute(select(WorkoutLog).where(WorkoutLog.id == first.log_id))).scalar_one()
        assert log.payload == {"note": "b"}

    @pytest.mark.asyncio
    async def test_uncompleted_log_awards_nothing(self, db_session, make_profile):
        user = await make_profile()
        result = await log_workout(db_session, user, TODAY, False, today=TODAY)
        await db_session.commit()

        assert result.awarded_xp == 0
        assert result.current_streak == 0
        assert result.total_xp == 0

    @pytest.mark.asyncio
    async def test_toggling_off_keeps_xp_and_does_not_reaward(self, db_session, make_profile):
        user = await make_profile()
        await log_workout(db_session, user, TODAY, True, today=TODAY)
        off = await log_workout(db_session, user, TODAY, False, today=TODAY)
        on = await log_workout(db_session, user, TODAY, True, today=TODAY)
        await db_session.commit()

        assert off.total_xp == 40
        assert off.current_streak == 0
        assert on.awarded_xp == 0
        assert on.total_xp == 40
        assert on.current_streak == 1

        events = (
            await db_session.execute(select(func.count()).select_from(XPEvent).where(XPEvent.user_id == user.id))
        ).scalar_one()
        assert events == 1

    @pytest.mark.asyncio
    async def test_future_date_rejected(self, db_session, make_profile):
        user = await make_profile()
        with pytest.raises(ValidationFailed):
            await log_workout(db_session, user, TODAY + timedelta(days=1), True, today=TODAY)

    @pytest.mark.asyncio
    async def test_missing_date_rejected(self, db_session, make_profile):
        user = await make_profile()
        with pytest.raises(ValidationFailed):
            await log_workout(db_session, user, None, True, today=TODAY)

    @pytest.mark.asyncio
    async def test_backfill_does_not_move_last_workout_date_backwards(self, db_session, make_profile):
        user = await make_profile()
        await log_workout(db_session, user, TODAY, True, today=TODAY)
        await log_workout(db_session, user, TODAY - timedelta(days=3), True, today=TODAY)
        await db_session.commit()

        assert user.last_workout_date == TODAY


class TestStreaks:

    @pytest.mark.asyncio
    async def test_three_consecutive_days(self, db_session, make_profile):
        user = await make_profile()
        for offset in (2, 1, 0):
            result = await log_workout(db_session, user, TODAY - timedelta(days=offset), True, today=TODAY)
        await db_session.commit()

        assert result.current_streak == 3
        assert result.longest_streak == 3
        assert user.current_streak == 3

    @pytest.mark.asyncio
    async def test_longest_survives_a_gap(self, db_session, make_profile):
        """Days -9..-5 and -1..0 completed: longest 5, current 2."""
        user = await make_profile()
        for offset in (9, 8, 7, 6, 5, 1, 0):
            result = await log_workout(db_session, user, TODAY - timedelta(days=offset), True, today=TODAY)
        await db_session.commit()

        assert result.current_streak == 2
        assert result.longest_streak == 5

    @pytest.mark.asyncio
    async def test_longest_never_decreases(self, db_session, make_profile):
        user = await make_profile()
        for offset in (2, 1, 0):
            await log_workout(db_session, user, TODAY - timedelta(days=offset), True, today=TODAY)
        result = await log_workout(db_session, user, TODAY - timedelta(days=1), False, today=TODAY)
        await db_session.commit()

        assert result.current_streak == 1
        assert result.longest_streak == 3

    @pytest.mark.asyncio
    async def test_streak_is_zero_without_a_log_today(self, db_session, make_profile):
        user = await make_profile()
        await log_workout(db_session, user, TODAY - timedelta(days=1), True, today=TODAY - timedelta(days=1))
        result = await log_workout(db_session, user, TODAY - timedelta(days=2), True, today=TODAY)
        await db_session.commit()

        assert result.current_streak == 0
        assert result.longest_streak == 2


class TestLogListing:

    @pytest.mark.asyncio
    async def test_recent_logs_newest_first(self, db_session, make_profile):
        user = await make_profile()
        for offset in (40, 3, 1, 0):
            await log_workout(db_session, user, TODAY - timedelta(days=offset), True, today=TODAY)
        await db_session.commit()

        logs = await list_workout_logs(db_session, user, days=30, today=TODAY)
        assert [log.log_date for log in logs] == [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=3)]


class TestWorkoutPlans:

    @pytest.mark.asyncio
    async def test_plans_filtered_by_path(self, db_session, make_profile, make_plan):
        user = await make_profile()
        await make_plan()
        await make_plan(name="DEMON CUT PHASE PPL 5D", path=PATH_HEAVENLY_DEMON)
        await make_plan(name="Open Mobility", path=None)

        names = [p.name for p in await list_workout_plans(db_session, user)]
        assert names == ["HUNTER CUT PHASE PPL 5D", "Open Mobility"]

    @pytest.mark.asyncio
    async def test_select_replaces_previous_choice(self, db_session, make_profile, make_plan):
        user = await make_profile()
        first = await make_plan()
        second = await make_plan(name="Open Mobility", path=None)

        await select_workout_plan(db_session, user, first.id)
        await db_session.commit()
        await select_workout_plan(db_session, user, second.id)
        await db_session.commit()

        selected = await get_selected_plan(db_session, user)
        assert selected is not None
        assert selected.id == second.id
        rows = (
            await db_session.execute(
                select(func.count()).select_from(SelectedWorkoutPlan).where(SelectedWorkoutPlan.user_id == user.id)
            )
        ).scalar_one()
        assert rows == 1

    @pytest.mark.asyncio
    async def test_other_path_plan_rejected(self, db_session, make_profile, make_plan):
        user = await make_profile()
        plan = await make_plan(name="DEMON CUT PHASE PPL 5D", path=PATH_HEAVENLY_DEMON)
        with pytest.raises(PathMismatch):
            await select_workout_plan(db_session, user, plan.id)

    @pytest.mark.asyncio
    async def test_unknown_plan_not_found(self, db_session, make_profile):
        user = await make_profile()
        with pytest.raises(NotFound):
            await select_workout_plan(db_session, user, "6b1d3f0e-2c4a-4b8e-9f00-000000000000")
