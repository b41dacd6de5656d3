"""Request/response schemas for guild endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateGuildRequest(BaseModel):
    name: str = Field(..., max_length=128)


class JoinGuildRequest(BaseModel):
    invite_code: str = Field(..., min_length=1, max_length=16)


class GuildResponse(BaseModel):
    id: str
    name: str
    owner_id: str
    invite_code: str
    created_at: datetime | None = None
    member_count: int | None = None
    my_role: str | None = None


class GuildListResponse(BaseModel):
    guilds: list[GuildResponse]
    total: int
    page: int
    per_page: int


class MemberResponse(BaseModel):
    user_id: str
    display_name: str
    role: str
    total_xp: int
    joined_at: datetime | None = None


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: str
    display_name: str
    xp: int


class LeaderboardResponse(BaseModel):
    group_id: str
    timeframe: str
    entries: list[LeaderboardEntryResponse]


class CreateChallengeRequest(BaseModel):
    title: str = Field(..., max_length=256)
    starts_at: datetime | None = None
    ends_at: datetime | None = None


class ChallengeResponse(BaseModel):
    id: str
    group_id: str
    title: str
    starts_at: datetime
    ends_at: datetime | None = None
    created_by: str
    created_at: datetime | None = None
