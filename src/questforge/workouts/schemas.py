"""Request/response schemas for workout endpoints."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


class PlanDayResponse(BaseModel):
    day_number: int
    title: str
    template: dict[str, Any]


class WorkoutPlanResponse(BaseModel):
    id: str
    name: str
    path: str | None = None
    description: str
    days: list[PlanDayResponse] = []


class SelectPlanRequest(BaseModel):
    plan_id: uuid.UUID


class WorkoutLogRequest(BaseModel):
    """Log (or re-log) one calendar day."""

    log_date: date
    completed: bool
    payload: dict[str, Any] = Field(default_factory=dict)


class WorkoutLogResponse(BaseModel):
    id: str
    log_date: date
    completed: bool
    payload: dict[str, Any]
    updated_at: datetime | None = None


class WorkoutLogResultResponse(BaseModel):
    log_id: str
    awarded_xp: int
    bonus_xp: int
    current_streak: int
    longest_streak: int
    total_xp: int
