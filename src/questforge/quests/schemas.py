"""Request/response schemas for quest endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class QuestResponse(BaseModel):
    id: str
    title: str
    description: str
    path: str
    category: str
    difficulty: str
    xp_reward: int
    flavor_text: str


class AssignmentResponse(BaseModel):
    id: str
    quest_id: str
    status: str
    selected_at: datetime
    completed_at: datetime | None = None
    quest: QuestResponse


class CompleteQuestRequest(BaseModel):
    note: str | None = Field(None, max_length=2000)


class CompletionResponse(BaseModel):
    """Outcome of a completion. A repeat returns awarded=false and 0 XP."""

    awarded: bool
    awarded_xp: int
    total_xp: int
    assignment: AssignmentResponse
