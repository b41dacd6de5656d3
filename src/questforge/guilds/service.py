"""Guild directory business logic.

Rules:
- Guild names are trimmed and must be 3-64 characters
- Invite codes are server-generated, 8-char A-Z0-9, looked up case-insensitively
- The creator becomes owner in the same transaction that creates the guild
- Joining twice is a no-op (UNIQUE(group_id, user_id) + ON CONFLICT DO NOTHING)
- The owner cannot leave while other members remain
- Group-scoped reads are member-only unless the relaxed browse policy is on
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.config import get_settings
from questforge.db.dialect import insert_for
from questforge.db.models import (
    ROLE_MEMBER,
    ROLE_OWNER,
    Challenge,
    Group,
    GroupMembership,
    Profile,
)
from questforge.errors import AuthorizationError, NotFound, ValidationFailed
from questforge.guilds.invite_codes import generate_unique_invite_code, normalize_invite_code

logger = logging.getLogger(__name__)

CHALLENGE_TITLE_MAX_LENGTH = 128


async def get_group(db: AsyncSession, group_id: str) -> Group | None:
    """Get a guild by ID."""
    result = await db.execute(select(Group).where(Group.id == group_id))
    return result.scalar_one_or_none()


async def get_membership(db: AsyncSession, group_id: str, user_id: str) -> GroupMembership | None:
    result = await db.execute(
        select(GroupMembership).where(
            GroupMembership.group_id == group_id,
            GroupMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def require_group(db: AsyncSession, group_id: str) -> Group:
    group = await get_group(db, group_id)
    if group is None:
        msg = "Guild not found"
        raise NotFound(msg)
    return group


async def require_read_access(db: AsyncSession, caller: Profile, group_id: str) -> Group:
    """Return the guild if the caller may read its group-scoped rows."""
    group = await require_group(db, group_id)
    if get_settings().guild_reads_members_only:
        if await get_membership(db, group_id, caller.id) is None:
            msg = "You are not a member of this guild"
            raise AuthorizationError(msg)
    return group


async def require_member(db: AsyncSession, caller: Profile, group_id: str) -> GroupMembership:
    await require_group(db, group_id)
    membership = await get_membership(db, group_id, caller.id)
    if membership is None:
        msg = "You are not a member of this guild"
        raise AuthorizationError(msg)
    return membership


# ---------------------------------------------------------------------------
# Create / join / leave
# ---------------------------------------------------------------------------


async def create_guild(db: AsyncSession, owner: Profile, name: str) -> Group:
    """Create a guild. The creator becomes its owner member."""
    settings = get_settings()
    name = (name or "").strip()
    if not settings.guild_name_min_length <= len(name) <= settings.guild_name_max_length:
        msg = (
            f"Guild name must be {settings.guild_name_min_length}-"
            f"{settings.guild_name_max_length} characters"
        )
        raise ValidationFailed(msg)

    now = datetime.now(timezone.utc)
    invite_code = await generate_unique_invite_code(db)

    group = Group(
        name=name,
        owner_id=owner.id,
        invite_code=invite_code,
        created_at=now,
    )
    db.add(group)
    await db.flush()

    db.add(GroupMembership(
        group_id=group.id,
        user_id=owner.id,
        role=ROLE_OWNER,
        joined_at=now,
    ))
    await db.flush()

    logger.info("Guild created: %s (id=%s, owner=%s)", name, group.id, owner.id)
    return group


async def join_guild_by_code(db: AsyncSession, user: Profile, invite_code: str) -> Group:
    """Join a guild using an invite code. Already a member is a no-op."""
    code = normalize_invite_code(invite_code or "")
    result = await db.execute(select(Group).where(Group.invite_code == code))
    group = result.scalar_one_or_none()
    if group is None:
        msg = "Invalid invite code"
        raise NotFound(msg)

    stmt = insert_for(db, GroupMembership).values(
        group_id=group.id,
        user_id=user.id,
        role=ROLE_MEMBER,
        joined_at=datetime.now(timezone.utc),
    )
    stmt = stmt.on_conflict_do_nothing(index_elements=["group_id", "user_id"]).returning(GroupMembership.id)
    joined = (await db.execute(stmt)).scalar_one_or_none()

    if joined is not None:
        logger.info("User %s joined guild %s via invite code", user.id, group.id)
    return group


async def leave_guild(db: AsyncSession, user: Profile, group_id: str) -> None:
    """Remove the caller's own membership."""
    membership = await require_member(db, user, group_id)

    if membership.role == ROLE_OWNER:
        others = (
            await db.execute(
                select(func.count())
                .select_from(GroupMembership)
                .where(
                    GroupMembership.group_id == group_id,
                    GroupMembership.user_id != user.id,
                )
            )
        ).scalar_one()
        if others > 0:
            msg = "The guild owner cannot leave while other members remain"
            raise ValidationFailed(msg)

    await db.execute(
        delete(GroupMembership).where(GroupMembership.id == membership.id)
    )
    logger.info("User %s left guild %s", user.id, group_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_guilds(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[tuple[Group, int]], int]:
    """Browse all guilds with member counts (paginated)."""
    total = (await db.execute(select(func.count()).select_from(Group))).scalar_one()

    member_count = (
        select(GroupMembership.group_id, func.count().label("member_count"))
        .group_by(GroupMembership.group_id)
        .subquery()
    )
    result = await db.execute(
        select(Group, func.coalesce(member_count.c.member_count, 0))
        .outerjoin(member_count, member_count.c.group_id == Group.id)
        .order_by(Group.created_at.desc(), Group.name)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return [(row[0], int(row[1])) for row in result], total


async def list_my_guilds(db: AsyncSession, user: Profile) -> list[tuple[Group, str]]:
    """Guilds the caller belongs to, with the caller's role."""
    result = await db.execute(
        select(Group, GroupMembership.role)
        .join(GroupMembership, GroupMembership.group_id == Group.id)
        .where(GroupMembership.user_id == user.id)
        .order_by(GroupMembership.joined_at.asc())
    )
    return [(row[0], row[1]) for row in result]


async def get_members(
    db: AsyncSession, caller: Profile, group_id: str
) -> list[tuple[GroupMembership, Profile]]:
    """Guild roster with profiles, oldest member first."""
    await require_read_access(db, caller, group_id)
    result = await db.execute(
        select(GroupMembership, Profile)
        .join(Profile, GroupMembership.user_id == Profile.id)
        .where(GroupMembership.group_id == group_id)
        .order_by(GroupMembership.joined_at.asc())
    )
    return [(row.GroupMembership, row.Profile) for row in result]


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


def _as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


async def list_challenges(db: AsyncSession, caller: Profile, group_id: str) -> list[Challenge]:
    await require_read_access(db, caller, group_id)
    result = await db.execute(
        select(Challenge)
        .where(Challenge.group_id == group_id)
        .order_by(Challenge.starts_at.desc())
    )
    return list(result.scalars().all())


async def create_challenge(
    db: AsyncSession,
    caller: Profile,
    group_id: str,
    title: str,
    starts_at: datetime | None = None,
    ends_at: datetime | None = None,
) -> Challenge:
    """Create a group-scoped challenge. Members only."""
    await require_member(db, caller, group_id)

    title = (title or "").strip()
    if not title or len(title) > CHALLENGE_TITLE_MAX_LENGTH:
        msg = f"Challenge title must be 1-{CHALLENGE_TITLE_MAX_LENGTH} characters"
        raise ValidationFailed(msg)

    now = datetime.now(timezone.utc)
    starts_at = _as_utc(starts_at) if starts_at is not None else now
    ends_at = _as_utc(ends_at) if ends_at is not None else None
    if ends_at is not None and ends_at < starts_at:
        msg = "Challenge cannot end before it starts"
        raise ValidationFailed(msg)

    challenge = Challenge(
        group_id=group_id,
        title=title,
        starts_at=starts_at,
        ends_at=ends_at,
        created_by=caller.id,
        created_at=now,
    )
    db.add(challenge)
    await db.flush()
    logger.info("Challenge created in guild %s by %s: %s", group_id, caller.id, title)
    return challenge
