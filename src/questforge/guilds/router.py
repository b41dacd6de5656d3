"""Guild router: /api/v1/guilds endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.auth.dependencies import get_current_user
from questforge.database import get_session
from questforge.db.models import Challenge, Group, Profile
from questforge.guilds.leaderboard import TIMEFRAME_WEEKLY, display_name_for, get_leaderboard
from questforge.guilds.schemas import (
    ChallengeResponse,
    CreateChallengeRequest,
    CreateGuildRequest,
    GuildListResponse,
    GuildResponse,
    JoinGuildRequest,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    MemberResponse,
)
from questforge.guilds.service import (
    create_challenge,
    create_guild,
    get_members,
    join_guild_by_code,
    leave_guild,
    list_challenges,
    list_guilds,
    list_my_guilds,
)

router = APIRouter(prefix="/api/v1/guilds", tags=["Guilds"])


def _guild_response(group: Group, member_count: int | None = None, my_role: str | None = None) -> GuildResponse:
    return GuildResponse(
        id=group.id,
        name=group.name,
        owner_id=group.owner_id,
        invite_code=group.invite_code,
        created_at=group.created_at,
        member_count=member_count,
        my_role=my_role,
    )


def _challenge_response(challenge: Challenge) -> ChallengeResponse:
    return ChallengeResponse(
        id=challenge.id,
        group_id=challenge.group_id,
        title=challenge.title,
        starts_at=challenge.starts_at,
        ends_at=challenge.ends_at,
        created_by=challenge.created_by,
        created_at=challenge.created_at,
    )


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


@router.post("", response_model=GuildResponse, status_code=201)
async def create(
    body: CreateGuildRequest,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> GuildResponse:
    """Create a guild; the caller becomes its owner."""
    group = await create_guild(db, profile, body.name)
    await db.commit()
    return _guild_response(group, member_count=1, my_role="owner")


@router.post("/join", response_model=GuildResponse)
async def join(
    body: JoinGuildRequest,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> GuildResponse:
    """Join by invite code. Joining a guild twice is a no-op."""
    group = await join_guild_by_code(db, profile, body.invite_code)
    await db.commit()
    return _guild_response(group)


@router.get("", response_model=GuildListResponse)
async def browse(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> GuildListResponse:
    """Browse all guilds with member counts."""
    rows, total = await list_guilds(db, page=page, per_page=per_page)
    return GuildListResponse(
        guilds=[_guild_response(g, member_count=count) for g, count in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/mine", response_model=list[GuildResponse])
async def mine(
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[GuildResponse]:
    """Guilds the caller belongs to."""
    rows = await list_my_guilds(db, profile)
    return [_guild_response(g, my_role=role) for g, role in rows]


@router.get("/{group_id}/members", response_model=list[MemberResponse])
async def members(
    group_id: uuid.UUID,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[MemberResponse]:
    """Guild roster."""
    rows = await get_members(db, profile, str(group_id))
    return [
        MemberResponse(
            user_id=member.id,
            display_name=display_name_for(member.id, member.display_name, member.username),
            role=membership.role,
            total_xp=member.total_xp,
            joined_at=membership.joined_at,
        )
        for membership, member in rows
    ]


@router.delete("/{group_id}/membership", status_code=204)
async def leave(
    group_id: uuid.UUID,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> None:
    """Leave a guild."""
    await leave_guild(db, profile, str(group_id))
    await db.commit()


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------


@router.get("/{group_id}/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    group_id: uuid.UUID,
    timeframe: str = Query(TIMEFRAME_WEEKLY),
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Members ranked by XP for the week (Monday start) or all time."""
    entries = await get_leaderboard(db, profile, str(group_id), timeframe)
    return LeaderboardResponse(
        group_id=str(group_id),
        timeframe=timeframe,
        entries=[LeaderboardEntryResponse(**e) for e in entries],
    )


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


@router.get("/{group_id}/challenges", response_model=list[ChallengeResponse])
async def challenges(
    group_id: uuid.UUID,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[ChallengeResponse]:
    rows = await list_challenges(db, profile, str(group_id))
    return [_challenge_response(c) for c in rows]


@router.post("/{group_id}/challenges", response_model=ChallengeResponse, status_code=201)
async def new_challenge(
    group_id: uuid.UUID,
    body: CreateChallengeRequest,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ChallengeResponse:
    """Create a challenge in a guild the caller belongs to."""
    challenge = await create_challenge(
        db, profile, str(group_id), body.title, starts_at=body.starts_at, ends_at=body.ends_at,
    )
    await db.commit()
    return _challenge_response(challenge)
