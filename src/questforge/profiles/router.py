"""Profile router: /api/v1/me endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.auth.dependencies import get_current_user
from questforge.database import get_session
from questforge.db.models import Profile
from questforge.profiles.schemas import (
    ChoosePathRequest,
    LevelInfo,
    ProfileResponse,
    ProfileUpdateRequest,
    ReconcileResponse,
    XPEventResponse,
    XPHistoryResponse,
)
from questforge.profiles.service import choose_path, update_display_name
from questforge.progression.ledger import list_xp_events, reconcile_total_xp
from questforge.progression.levels import compute_level

router = APIRouter(prefix="/api/v1/me", tags=["Profile"])


def _profile_response(profile: Profile) -> ProfileResponse:
    """Build a ProfileResponse from a Profile model."""
    return ProfileResponse(
        id=profile.id,
        username=profile.username,
        display_name=profile.display_name,
        path=profile.path,
        total_xp=profile.total_xp,
        current_streak=profile.current_streak,
        longest_streak=profile.longest_streak,
        last_workout_date=profile.last_workout_date,
        level=LevelInfo(**compute_level(profile.total_xp)),
    )


@router.get("", response_model=ProfileResponse)
async def get_me(
    profile: Profile = Depends(get_current_user),
) -> ProfileResponse:
    """Get own progression profile with level info."""
    return _profile_response(profile)


@router.put("/path", response_model=ProfileResponse)
async def set_path(
    body: ChoosePathRequest,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Choose the progression path."""
    profile = await choose_path(db, profile, body.path)
    await db.commit()
    return _profile_response(profile)


@router.patch("", response_model=ProfileResponse)
async def update_me(
    body: ProfileUpdateRequest,
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Update the display name shown on leaderboards."""
    profile = await update_display_name(db, profile, body.display_name)
    await db.commit()
    return _profile_response(profile)


@router.get("/xp/history", response_model=XPHistoryResponse)
async def xp_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> XPHistoryResponse:
    """Paginated XP ledger, newest first."""
    events, total = await list_xp_events(db, profile.id, page=page, per_page=per_page)
    return XPHistoryResponse(
        events=[
            XPEventResponse(
                id=e.id,
                source_type=e.source_type,
                source_id=e.source_id,
                amount=e.amount,
                created_at=e.created_at,
            )
            for e in events
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/xp/reconcile", response_model=ReconcileResponse)
async def reconcile_xp(
    profile: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ReconcileResponse:
    """Rebuild the cached XP total from the ledger."""
    before, total = await reconcile_total_xp(db, profile.id)
    await db.commit()
    return ReconcileResponse(cached_before=before, total_xp=total, corrected=before != total)
