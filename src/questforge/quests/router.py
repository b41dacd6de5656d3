"""Quest router: /api/v1/quests endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.auth.dependencies import get_current_user
from questforge.database import get_session
from questforge.db.models import SOURCE_QUEST_COMPLETION, STATUSES, Profile, QuestAssignment, QuestDefinition
from questforge.errors import ValidationFailed
from questforge.progression.events import publish_xp_awarded
from questforge.quests.schemas import (
    AssignmentResponse,
    CompleteQuestRequest,
    CompletionResponse,
    QuestResponse,
)
from questforge.quests.service import complete_quest, list_assignments, list_quests, select_quest

router = APIRouter(prefix="/api/v1/quests", tags=["Quests"])


def _quest_response(quest: QuestDefinition) -> QuestResponse:
    return QuestResponse(
        id=quest.id,
        title=quest.title,
        description=quest.description,
        path=quest.path,
        category=quest.category,
        difficulty=quest.difficulty,
        xp_reward=quest.xp_reward,
        flavor_text=quest.flavor_text,
    )


def _assignment_response(assignment: QuestAssignment) -> AssignmentResponse:
    return AssignmentResponse(
        id=assignment.id,
        quest_id=assignment.quest_id,
        status=assignment.status,
        selected_at=assignment.selected_at,
        completed_at=assignment.completed_at,
        quest=_quest_response(assignment.quest),
    )


@router.get("", response_model=list[QuestResponse])
async def get_quests(
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[QuestResponse]:
    """Active quests for the caller's path (empty before a path is chosen)."""
    quests = await list_quests(db, profile)
    return [_quest_response(q) for q in quests]


@router.get("/assignments", response_model=list[AssignmentResponse])
async def get_assignments(
    status: str | None = Query(None),
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[AssignmentResponse]:
    """The caller's quest assignments, optionally filtered by status."""
    if status is not None and status not in STATUSES:
        msg = f"Unknown assignment status: {status}"
        raise ValidationFailed(msg)
    assignments = await list_assignments(db, profile, status=status)
    return [_assignment_response(a) for a in assignments]


@router.post("/{quest_id}/select", response_model=AssignmentResponse)
async def select(
    quest_id: uuid.UUID,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AssignmentResponse:
    """Make a quest active. Re-selecting an active quest is a no-op."""
    assignment = await select_quest(db, profile, str(quest_id))
    await db.commit()
    return _assignment_response(assignment)


@router.post("/assignments/{assignment_id}/complete", response_model=CompletionResponse)
async def complete(
    assignment_id: uuid.UUID,
    body: CompleteQuestRequest | None = Body(None),
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CompletionResponse:
    """Complete an active assignment and award its XP once."""
    result = await complete_quest(db, profile, str(assignment_id), note=body.note if body else None)
    await db.commit()

    if result.awarded:
        await publish_xp_awarded(profile.id, SOURCE_QUEST_COMPLETION, result.awarded_xp, result.total_xp)

    return CompletionResponse(
        awarded=result.awarded,
        awarded_xp=result.awarded_xp,
        total_xp=result.total_xp,
        assignment=_assignment_response(result.assignment),
    )
