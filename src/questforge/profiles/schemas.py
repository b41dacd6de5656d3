"""Request/response schemas for profile and XP endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class LevelInfo(BaseModel):
    level: int
    xp_into_level: int
    xp_for_level: int
    next_level: int


class ProfileResponse(BaseModel):
    """The caller's progression profile."""

    id: str
    username: str | None = None
    display_name: str | None = None
    path: str | None = None
    total_xp: int
    current_streak: int
    longest_streak: int
    last_workout_date: date | None = None
    level: LevelInfo


class ChoosePathRequest(BaseModel):
    path: str = Field(..., min_length=1, max_length=32)


class ProfileUpdateRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=64)


class XPEventResponse(BaseModel):
    id: str
    source_type: str
    source_id: str
    amount: int
    created_at: datetime


class XPHistoryResponse(BaseModel):
    events: list[XPEventResponse]
    total: int
    page: int
    per_page: int


class ReconcileResponse(BaseModel):
    """Cached total before and after replaying the ledger."""

    cached_before: int
    total_xp: int
    corrected: bool
