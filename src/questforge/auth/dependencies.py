"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.auth.jwt import verify_token
from questforge.database import get_session
from questforge.db.models import Profile
from questforge.errors import NotAuthenticated
from questforge.profiles.service import get_or_create_profile

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    """
    Extract and verify JWT, return the caller's Profile.

    The profile row is created on first sight of a new subject. Raises 401
    when the token is missing or invalid.
    """
    if credentials is None:
        msg = "Not authenticated"
        raise NotAuthenticated(msg)
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise NotAuthenticated(str(e)) from e

    profile = await get_or_create_profile(db, payload["sub"], username=payload.get("username"))
    await db.commit()
    return profile
