"""Quest assignment state machine.

Lifecycle:
- Available (no row) -> active on select
- active -> completed exactly once on complete (terminal)
- abandoned is reserved and never entered

Re-selecting an active quest refreshes ``selected_at``; completing a
completed assignment is a no-op. Neither is an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.config import get_settings
from questforge.db.dialect import insert_for
from questforge.db.models import (
    SOURCE_QUEST_COMPLETION,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    Profile,
    QuestAssignment,
    QuestCompletion,
    QuestDefinition,
)
from questforge.errors import (
    CapacityExceeded,
    NotFound,
    OwnershipViolation,
    PathMismatch,
    ValidationFailed,
)
from questforge.progression.ledger import award_xp, get_total_xp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    awarded: bool
    awarded_xp: int
    total_xp: int
    assignment: QuestAssignment


async def list_quests(db: AsyncSession, profile: Profile) -> list[QuestDefinition]:
    """Active quest definitions for the caller's path."""
    if profile.path is None:
        return []
    result = await db.execute(
        select(QuestDefinition)
        .where(
            QuestDefinition.path == profile.path,
            QuestDefinition.is_active.is_(True),
        )
        .order_by(QuestDefinition.category, QuestDefinition.xp_reward, QuestDefinition.title)
    )
    return list(result.scalars().all())


async def list_assignments(
    db: AsyncSession,
    profile: Profile,
    status: str | None = None,
) -> list[QuestAssignment]:
    """The caller's assignments, most recently selected first."""
    query = select(QuestAssignment).where(QuestAssignment.user_id == profile.id)
    if status is not None:
        query = query.where(QuestAssignment.status == status)
    result = await db.execute(query.order_by(QuestAssignment.selected_at.desc()))
    return list(result.scalars().all())


async def count_active_assignments(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(QuestAssignment)
        .where(
            QuestAssignment.user_id == user_id,
            QuestAssignment.status == STATUS_ACTIVE,
        )
    )
    return result.scalar_one()


async def _lock_profile(db: AsyncSession, user_id: str, now: datetime) -> None:
    """Take the caller's profile row lock for the rest of the transaction.

    An UPDATE rather than SELECT ... FOR UPDATE: it locks the row on
    PostgreSQL and opens the write transaction on SQLite.
    """
    await db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(updated_at=now)
        .execution_options(synchronize_session="evaluate")
    )


async def _get_active_assignment(
    db: AsyncSession, user_id: str, quest_id: str
) -> QuestAssignment | None:
    result = await db.execute(
        select(QuestAssignment).where(
            QuestAssignment.user_id == user_id,
            QuestAssignment.quest_id == quest_id,
            QuestAssignment.status == STATUS_ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def select_quest(
    db: AsyncSession,
    profile: Profile,
    quest_id: str,
    cap: int | None = None,
    now: datetime | None = None,
) -> QuestAssignment:
    """Make a quest active for the caller.

    Raises:
        NotFound: quest missing or inactive.
        PathMismatch: quest belongs to another path, or no path chosen.
        CapacityExceeded: caller already has ``cap`` active quests.
    """
    if cap is None:
        cap = get_settings().active_quest_cap
    if now is None:
        now = datetime.now(timezone.utc)

    quest = await db.get(QuestDefinition, quest_id)
    if quest is None or not quest.is_active:
        msg = "Quest not found"
        raise NotFound(msg)

    if profile.path is None:
        msg = "Choose a path before selecting quests"
        raise PathMismatch(msg)
    if quest.path != profile.path:
        msg = f"Quest belongs to the {quest.path} path"
        raise PathMismatch(msg)

    existing = await _get_active_assignment(db, profile.id, quest.id)
    if existing is not None:
        existing.selected_at = now
        await db.flush()
        return existing

    # Row-lock the caller's profile so concurrent selects of different
    # quests cannot both pass the capacity check.
    await _lock_profile(db, profile.id, now)

    active = await count_active_assignments(db, profile.id)
    if active >= cap:
        msg = f"Active quest limit reached (max {cap})"
        raise CapacityExceeded(msg)

    stmt = insert_for(db, QuestAssignment).values(
        user_id=profile.id,
        quest_id=quest.id,
        status=STATUS_ACTIVE,
        selected_at=now,
    )
    stmt = stmt.on_conflict_do_nothing(
        index_elements=["user_id", "quest_id"],
        index_where=text("status = 'active'"),
    ).returning(QuestAssignment.id)
    inserted_id = (await db.execute(stmt)).scalar_one_or_none()

    if inserted_id is None:
        # A concurrent select won the partial unique index; adopt its row.
        assignment = await _get_active_assignment(db, profile.id, quest.id)
        if assignment is None:
            msg = "Quest not found"
            raise NotFound(msg)
        assignment.selected_at = now
        await db.flush()
        return assignment

    logger.info("Quest %s selected by user %s", quest.id, profile.id)
    result = await db.execute(select(QuestAssignment).where(QuestAssignment.id == inserted_id))
    return result.scalar_one()


async def complete_quest(
    db: AsyncSession,
    profile: Profile,
    assignment_id: str,
    note: str | None = None,
    now: datetime | None = None,
) -> CompletionResult:
    """Complete an active assignment and award its XP once.

    Raises:
        NotFound: assignment does not exist.
        OwnershipViolation: assignment belongs to someone else.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    result = await db.execute(select(QuestAssignment).where(QuestAssignment.id == assignment_id))
    assignment = result.scalar_one_or_none()
    if assignment is None:
        msg = "Quest assignment not found"
        raise NotFound(msg)
    if assignment.user_id != profile.id:
        msg = "Quest assignment belongs to another user"
        raise OwnershipViolation(msg)

    if assignment.status == STATUS_COMPLETED:
        return CompletionResult(
            awarded=False,
            awarded_xp=0,
            total_xp=await get_total_xp(db, profile.id),
            assignment=assignment,
        )
    if assignment.status != STATUS_ACTIVE:
        msg = f"Quest assignment is {assignment.status}"
        raise ValidationFailed(msg)

    reward = assignment.quest.xp_reward
    stmt = insert_for(db, QuestCompletion).values(
        assignment_id=assignment.id,
        user_id=profile.id,
        note=note,
        completed_at=now,
    )
    stmt = stmt.on_conflict_do_nothing(index_elements=["assignment_id"]).returning(QuestCompletion.id)
    completion_id = (await db.execute(stmt)).scalar_one_or_none()
    if completion_id is None:
        # A concurrent completion committed first; keep its timestamp.
        completion_id = (
            await db.execute(
                select(QuestCompletion.id).where(QuestCompletion.assignment_id == assignment.id)
            )
        ).scalar_one()
        await db.refresh(assignment, ["status", "completed_at"])

    award = await award_xp(db, profile.id, SOURCE_QUEST_COMPLETION, completion_id, reward, now=now)

    if assignment.status != STATUS_COMPLETED:
        assignment.status = STATUS_COMPLETED
        assignment.completed_at = now
        await db.flush()

    if award.granted:
        logger.info("Quest assignment %s completed by user %s (+%d XP)", assignment.id, profile.id, reward)

    return CompletionResult(
        awarded=award.granted,
        awarded_xp=reward if award.granted else 0,
        total_xp=award.total_after,
        assignment=assignment,
    )
