"""Group leaderboard: per-member XP sums over the ledger.

Every member of the group appears exactly once, with 0 XP when they have
no events in the window. Ordering is XP DESC, then display name ASC; equal
XP shares a dense rank (1, 1, 2).

Weekly windows start on Monday 00:00 in the configured calendar timezone.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.config import get_settings
from questforge.db.models import GroupMembership, Profile, XPEvent
from questforge.errors import ValidationFailed
from questforge.guilds.service import require_read_access
from questforge.workouts.streaks import get_calendar_tz

logger = logging.getLogger(__name__)

TIMEFRAME_WEEKLY = "weekly"
TIMEFRAME_ALL_TIME = "all_time"
TIMEFRAMES = frozenset({TIMEFRAME_WEEKLY, TIMEFRAME_ALL_TIME})


def get_monday(dt: datetime | date) -> date:
    """Get the Monday of the ISO week containing dt."""
    d = dt.date() if isinstance(dt, datetime) else dt
    return d - timedelta(days=d.weekday())


def week_start_utc(tz_name: str, now: datetime | None = None) -> datetime:
    """Monday 00:00 local time of the current week, as a UTC instant."""
    if now is None:
        now = datetime.now(timezone.utc)
    tz = get_calendar_tz(tz_name)
    monday = get_monday(now.astimezone(tz))
    return datetime.combine(monday, time.min, tzinfo=tz).astimezone(timezone.utc)


def display_name_for(user_id: str, display_name: str | None, username: str | None) -> str:
    """Leaderboard label: display name, else username, else a short tag."""
    if display_name and display_name.strip():
        return display_name.strip()
    if username and username.strip():
        return username.strip()
    return f"Hunter#{user_id.replace('-', '')[-4:].upper()}"


def rank_entries(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort by XP DESC, name ASC and assign dense ranks in place."""
    ordered = sorted(entries, key=lambda e: (-e["xp"], e["display_name"].lower(), e["user_id"]))
    rank = 0
    previous_xp: int | None = None
    for entry in ordered:
        if entry["xp"] != previous_xp:
            rank += 1
            previous_xp = entry["xp"]
        entry["rank"] = rank
    return ordered


async def get_leaderboard(
    db: AsyncSession,
    caller: Profile,
    group_id: str,
    timeframe: str = TIMEFRAME_WEEKLY,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Rank every member of ``group_id`` by XP earned in ``timeframe``.

    Raises:
        NotFound: group does not exist.
        AuthorizationError: caller is not a member (when reads are members-only).
        ValidationFailed: unknown timeframe.
    """
    if timeframe not in TIMEFRAMES:
        msg = f"Unknown timeframe: {timeframe}"
        raise ValidationFailed(msg)

    await require_read_access(db, caller, group_id)

    join_on = XPEvent.user_id == GroupMembership.user_id
    if timeframe == TIMEFRAME_WEEKLY:
        since = week_start_utc(get_settings().calendar_timezone, now)
        join_on = and_(join_on, XPEvent.created_at >= since)

    result = await db.execute(
        select(
            GroupMembership.user_id,
            Profile.display_name,
            Profile.username,
            func.coalesce(func.sum(XPEvent.amount), 0).label("xp"),
        )
        .join(Profile, Profile.id == GroupMembership.user_id)
        .outerjoin(XPEvent, join_on)
        .where(GroupMembership.group_id == group_id)
        .group_by(GroupMembership.user_id, Profile.display_name, Profile.username)
    )

    entries = [
        {
            "user_id": row.user_id,
            "display_name": display_name_for(row.user_id, row.display_name, row.username),
            "xp": int(row.xp),
        }
        for row in result
    ]
    logger.debug("Leaderboard built: group=%s timeframe=%s members=%d", group_id, timeframe, len(entries))
    return rank_entries(entries)
