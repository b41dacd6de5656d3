"""Workout router: /api/v1/workouts endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.auth.dependencies import get_current_user
from questforge.database import get_session
from questforge.db.models import SOURCE_WORKOUT_LOG, Profile, WorkoutPlan
from questforge.progression.events import publish_xp_awarded
from questforge.workouts.schemas import (
    PlanDayResponse,
    SelectPlanRequest,
    WorkoutLogRequest,
    WorkoutLogResponse,
    WorkoutLogResultResponse,
    WorkoutPlanResponse,
)
from questforge.workouts.service import (
    list_workout_logs,
    list_workout_plans,
    log_workout,
    select_workout_plan,
)

router = APIRouter(prefix="/api/v1/workouts", tags=["Workouts"])


def _plan_response(plan: WorkoutPlan) -> WorkoutPlanResponse:
    return WorkoutPlanResponse(
        id=plan.id,
        name=plan.name,
        path=plan.path,
        description=plan.description,
        days=[
            PlanDayResponse(day_number=d.day_number, title=d.title, template=d.template or {})
            for d in sorted(plan.days, key=lambda d: d.day_number)
        ],
    )


@router.get("/plans", response_model=list[WorkoutPlanResponse])
async def get_plans(
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[WorkoutPlanResponse]:
    """Active plans usable on the caller's path."""
    plans = await list_workout_plans(db, profile)
    return [_plan_response(p) for p in plans]


@router.put("/plan", response_model=WorkoutPlanResponse)
async def select_plan(
    body: SelectPlanRequest,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WorkoutPlanResponse:
    """Select the caller's workout plan (replaces any previous choice)."""
    plan = await select_workout_plan(db, profile, str(body.plan_id))
    await db.commit()
    return _plan_response(plan)


@router.get("/logs", response_model=list[WorkoutLogResponse])
async def get_logs(
    days: int = Query(30, ge=1, le=366),
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[WorkoutLogResponse]:
    """The caller's logs for the last ``days`` days, newest first."""
    logs = await list_workout_logs(db, profile, days=days)
    return [
        WorkoutLogResponse(
            id=log.id,
            log_date=log.log_date,
            completed=log.completed,
            payload=log.payload or {},
            updated_at=log.updated_at,
        )
        for log in logs
    ]


@router.post("/logs", response_model=WorkoutLogResultResponse)
async def post_log(
    body: WorkoutLogRequest,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WorkoutLogResultResponse:
    """Log a workout day. XP is awarded at most once per day."""
    result = await log_workout(db, profile, body.log_date, body.completed, payload=body.payload)
    await db.commit()

    if result.awarded_xp:
        await publish_xp_awarded(profile.id, SOURCE_WORKOUT_LOG, result.awarded_xp, result.total_xp)

    return WorkoutLogResultResponse(
        log_id=result.log_id,
        awarded_xp=result.awarded_xp,
        bonus_xp=result.bonus_xp,
        current_streak=result.current_streak,
        longest_streak=result.longest_streak,
        total_xp=result.total_xp,
    )
