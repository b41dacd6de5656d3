"""XP ledger: at-most-once awards with the cached total kept in step.

The ledger row's UNIQUE(user_id, source_type, source_id) constraint is the
serialization point. ``INSERT ... ON CONFLICT DO NOTHING RETURNING id`` yields
no row for a duplicate, so retries and concurrent duplicates collapse to a
single insert and a single increment of ``profiles.total_xp``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.db.dialect import insert_for
from questforge.db.models import (
    SOURCE_QUEST_COMPLETION,
    SOURCE_WORKOUT_LOG,
    Profile,
    XPEvent,
)
from questforge.errors import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

SOURCE_TYPES = frozenset({SOURCE_QUEST_COMPLETION, SOURCE_WORKOUT_LOG})


@dataclass(frozen=True)
class AwardResult:
    granted: bool
    total_after: int


async def get_total_xp(db: AsyncSession, user_id: str) -> int:
    """Read the cached total for a user."""
    result = await db.execute(select(Profile.total_xp).where(Profile.id == user_id))
    total = result.scalar_one_or_none()
    if total is None:
        msg = "Profile not found"
        raise NotFound(msg)
    return total


async def award_xp(
    db: AsyncSession,
    user_id: str,
    source_type: str,
    source_id: str,
    amount: int,
    now: datetime | None = None,
) -> AwardResult:
    """Award XP once per (user, source_type, source_id).

    Returns ``granted=False`` and the unchanged total when the event was
    already recorded. Must run inside the caller's transaction; nothing is
    committed here.
    """
    if source_type not in SOURCE_TYPES:
        msg = f"Unknown XP source type: {source_type}"
        raise ValidationFailed(msg)
    if amount < 0:
        msg = "XP amount must not be negative"
        raise ValidationFailed(msg)

    if now is None:
        now = datetime.now(timezone.utc)

    stmt = insert_for(db, XPEvent).values(
        user_id=user_id,
        source_type=source_type,
        source_id=source_id,
        amount=amount,
        created_at=now,
    )
    stmt = stmt.on_conflict_do_nothing(
        index_elements=["user_id", "source_type", "source_id"],
    ).returning(XPEvent.id)
    inserted = (await db.execute(stmt)).scalar_one_or_none()

    if inserted is None:
        logger.debug("Duplicate XP award ignored: %s %s:%s", user_id, source_type, source_id)
        return AwardResult(granted=False, total_after=await get_total_xp(db, user_id))

    # Single-statement increment; never read-modify-write the cache.
    result = await db.execute(
        update(Profile)
        .where(Profile.id == user_id)
        .values(total_xp=Profile.total_xp + amount, updated_at=now)
        .returning(Profile.total_xp)
        .execution_options(synchronize_session="evaluate")
    )
    total_after = result.scalar_one_or_none()
    if total_after is None:
        msg = "Profile not found"
        raise NotFound(msg)

    logger.info(
        "XP granted: user=%s source=%s:%s amount=%d total=%d",
        user_id, source_type, source_id, amount, total_after,
    )
    return AwardResult(granted=True, total_after=total_after)


async def reconcile_total_xp(db: AsyncSession, user_id: str) -> tuple[int, int]:
    """Rebuild the cached total by replaying the ledger.

    Returns ``(cached_before, ledger_total)``.
    """
    before = await get_total_xp(db, user_id)
    ledger_total = (
        await db.execute(
            select(func.coalesce(func.sum(XPEvent.amount), 0)).where(XPEvent.user_id == user_id)
        )
    ).scalar_one()

    if ledger_total != before:
        logger.warning(
            "XP cache drift for user %s: cached=%d ledger=%d", user_id, before, ledger_total,
        )
        await db.execute(
            update(Profile)
            .where(Profile.id == user_id)
            .values(total_xp=ledger_total, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="evaluate")
        )
    return before, int(ledger_total)


async def list_xp_events(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[XPEvent], int]:
    """Paginated ledger history for a user, newest first."""
    total = (
        await db.execute(
            select(func.count()).select_from(XPEvent).where(XPEvent.user_id == user_id)
        )
    ).scalar_one()

    result = await db.execute(
        select(XPEvent)
        .where(XPEvent.user_id == user_id)
        .order_by(XPEvent.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
