"""Workout plans, daily workout logs, and streak recomputation.

A log row is unique per (user, date) and keeps its id across re-logs, so the
XP award keyed by that id happens at most once per day. Flipping a day back
to ``completed=false`` does not reverse an award already granted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.config import Settings, get_settings
from questforge.db.dialect import insert_for
from questforge.db.models import (
    SOURCE_WORKOUT_LOG,
    Profile,
    SelectedWorkoutPlan,
    WorkoutLog,
    WorkoutPlan,
)
from questforge.errors import NotFound, PathMismatch, ValidationFailed
from questforge.progression.ledger import award_xp, get_total_xp
from questforge.workouts.streaks import current_streak, local_today, longest_run

logger = logging.getLogger(__name__)

WALK_BONUS_FLAG = "bonus_walk_45"
RUN_BONUS_FLAG = "bonus_run_45"


@dataclass(frozen=True)
class WorkoutLogResult:
    log_id: str
    awarded_xp: int
    bonus_xp: int
    current_streak: int
    longest_streak: int
    total_xp: int


def _flag(payload: dict[str, Any], key: str) -> bool:
    value = payload.get(key)
    return value is True or str(value).lower() == "true"


def compute_workout_xp(payload: dict[str, Any], settings: Settings | None = None) -> tuple[int, int]:
    """Return ``(total_xp, bonus_xp)`` for a completed workout.

    45-minute walk and run flags in the payload each add a bonus on top of
    the base amount.
    """
    if settings is None:
        settings = get_settings()

    bonus = 0
    if _flag(payload, WALK_BONUS_FLAG):
        bonus += settings.workout_walk_bonus_xp
    if _flag(payload, RUN_BONUS_FLAG):
        bonus += settings.workout_run_bonus_xp
    return settings.workout_base_xp + bonus, bonus


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


async def list_workout_plans(db: AsyncSession, profile: Profile) -> list[WorkoutPlan]:
    """Active plans usable on the caller's path (path-less plans included)."""
    query = select(WorkoutPlan).where(WorkoutPlan.is_active.is_(True))
    if profile.path is not None:
        query = query.where((WorkoutPlan.path.is_(None)) | (WorkoutPlan.path == profile.path))
    result = await db.execute(query.order_by(WorkoutPlan.name))
    return list(result.scalars().all())


async def get_selected_plan(db: AsyncSession, profile: Profile) -> WorkoutPlan | None:
    result = await db.execute(
        select(WorkoutPlan)
        .join(SelectedWorkoutPlan, SelectedWorkoutPlan.plan_id == WorkoutPlan.id)
        .where(SelectedWorkoutPlan.user_id == profile.id)
    )
    return result.scalar_one_or_none()


async def select_workout_plan(
    db: AsyncSession,
    profile: Profile,
    plan_id: str,
    now: datetime | None = None,
) -> WorkoutPlan:
    """Make ``plan_id`` the caller's single selected plan.

    Raises:
        NotFound: plan missing or inactive.
        PathMismatch: plan is scoped to another path.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    plan = await db.get(WorkoutPlan, plan_id)
    if plan is None or not plan.is_active:
        msg = "Workout plan not found"
        raise NotFound(msg)
    if plan.path is not None and plan.path != profile.path:
        msg = f"Workout plan belongs to the {plan.path} path"
        raise PathMismatch(msg)

    stmt = insert_for(db, SelectedWorkoutPlan).values(
        user_id=profile.id,
        plan_id=plan.id,
        selected_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id"],
        set_={"plan_id": stmt.excluded.plan_id, "selected_at": stmt.excluded.selected_at},
    )
    await db.execute(stmt)
    logger.info("Workout plan %s selected by user %s", plan.id, profile.id)
    return plan


# ---------------------------------------------------------------------------
# Logs + streaks
# ---------------------------------------------------------------------------


async def list_workout_logs(
    db: AsyncSession,
    profile: Profile,
    days: int = 30,
    today: date | None = None,
) -> list[WorkoutLog]:
    """The caller's logs for the last ``days`` days, newest first."""
    if today is None:
        today = local_today(get_settings().calendar_timezone)
    since = today - timedelta(days=days - 1)
    result = await db.execute(
        select(WorkoutLog)
        .where(WorkoutLog.user_id == profile.id, WorkoutLog.log_date >= since)
        .order_by(WorkoutLog.log_date.desc())
    )
    return list(result.scalars().all())


async def recalculate_streaks(db: AsyncSession, user_id: str, today: date) -> tuple[int, int]:
    """Recompute and store ``(current_streak, longest_streak)`` for a user.

    ``longest_streak`` never decreases.
    """
    result = await db.execute(
        select(WorkoutLog.log_date).where(
            WorkoutLog.user_id == user_id,
            WorkoutLog.completed.is_(True),
        )
    )
    completed_dates = list(result.scalars().all())

    current = current_streak(completed_dates, today)
    longest_history = longest_run(completed_dates)

    profile = (await db.execute(select(Profile).where(Profile.id == user_id))).scalar_one()
    profile.current_streak = current
    profile.longest_streak = max(profile.longest_streak, longest_history, current)
    profile.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return profile.current_streak, profile.longest_streak


async def log_workout(
    db: AsyncSession,
    profile: Profile,
    log_date: date | None,
    completed: bool,
    payload: dict[str, Any] | None = None,
    today: date | None = None,
    now: datetime | None = None,
) -> WorkoutLogResult:
    """Upsert the caller's log for ``log_date``, award XP once, refresh streaks.

    Raises:
        ValidationFailed: missing date, or a date in the future.
    """
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)
    if today is None:
        today = local_today(settings.calendar_timezone, now)

    if log_date is None:
        msg = "Workout date is required"
        raise ValidationFailed(msg)
    if log_date > today:
        msg = "Cannot log a workout for a future date"
        raise ValidationFailed(msg)
    if payload is None:
        payload = {}

    stmt = insert_for(db, WorkoutLog).values(
        user_id=profile.id,
        log_date=log_date,
        completed=completed,
        payload=payload,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "log_date"],
        set_={
            "completed": stmt.excluded.completed,
            "payload": stmt.excluded.payload,
            "updated_at": stmt.excluded.updated_at,
        },
    ).returning(WorkoutLog.id)
    log_id = (await db.execute(stmt)).scalar_one()

    awarded_xp = 0
    bonus_xp = 0
    if completed:
        amount, bonus = compute_workout_xp(payload, settings)
        award = await award_xp(db, profile.id, SOURCE_WORKOUT_LOG, log_id, amount, now=now)
        if award.granted:
            awarded_xp, bonus_xp = amount, bonus
            if profile.last_workout_date is None or log_date > profile.last_workout_date:
                profile.last_workout_date = log_date

    current, longest = await recalculate_streaks(db, profile.id, today)
    total_xp = await get_total_xp(db, profile.id)

    logger.info(
        "Workout logged: user=%s date=%s completed=%s xp=%d streak=%d",
        profile.id, log_date.isoformat(), completed, awarded_xp, current,
    )
    return WorkoutLogResult(
        log_id=log_id,
        awarded_xp=awarded_xp,
        bonus_xp=bonus_xp,
        current_streak=current,
        longest_streak=longest,
        total_xp=total_xp,
    )
