"""Profile lookup and owner-editable fields.

XP and streak columns are never written here; only the engine moves them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.db.dialect import insert_for
from questforge.db.models import PATHS, Profile
from questforge.errors import ValidationFailed

logger = logging.getLogger(__name__)

DISPLAY_NAME_MAX_LENGTH = 64


async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    """Get a profile by ID."""
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_profile(db: AsyncSession, user_id: str, username: str | None = None) -> Profile:
    """Get or create the profile row for an authenticated user.

    The insert is ``ON CONFLICT DO NOTHING`` so two first requests racing
    each other both end up with the same row.
    """
    profile = await get_profile(db, user_id)
    if profile is not None:
        return profile

    now = datetime.now(timezone.utc)
    stmt = insert_for(db, Profile).values(
        id=user_id,
        username=username,
        total_xp=0,
        current_streak=0,
        longest_streak=0,
        created_at=now,
        updated_at=now,
    )
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["id"]))
    logger.info("Profile created for user %s", user_id)

    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one()


async def choose_path(db: AsyncSession, profile: Profile, path: str) -> Profile:
    """Set the caller's progression path."""
    normalized = path.strip().upper()
    if normalized not in PATHS:
        msg = f"Unknown path '{path}'. Expected one of: {', '.join(sorted(PATHS))}"
        raise ValidationFailed(msg)

    profile.path = normalized
    profile.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return profile


async def update_display_name(db: AsyncSession, profile: Profile, display_name: str) -> Profile:
    """Set the name shown on leaderboards."""
    name = display_name.strip()
    if not name or len(name) > DISPLAY_NAME_MAX_LENGTH:
        msg = f"Display name must be 1-{DISPLAY_NAME_MAX_LENGTH} characters"
        raise ValidationFailed(msg)
    if "@" in name:
        msg = "Display name must not be an email address"
        raise ValidationFailed(msg)

    profile.display_name = name
    profile.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return profile
