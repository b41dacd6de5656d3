"""
JWT verification for tokens issued by the external auth provider.

The only claim the engine relies on is ``sub``: the caller's user id, which
must be a UUID. Tokens are verified with a shared secret (HS*) or, when a
public key path is configured, with that key (RS*/ES*).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt

from questforge.config import get_settings

_public_key: str | None = None


def _verification_key() -> str:
    """Load the verification key (cached after first call)."""
    global _public_key  # noqa: PLW0603
    settings = get_settings()
    if not settings.jwt_public_key_path:
        return settings.jwt_secret
    if _public_key is None:
        _public_key = Path(settings.jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset the cached public key (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def create_access_token(user_id: str, expires_minutes: int = 60, **claims: Any) -> str:
    """
    Create a signed token with the shared secret.

    Production tokens come from the auth provider; this exists for local
    development and tests.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    payload.update(claims)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Returns:
        Decoded payload, with ``sub`` normalized to a canonical UUID string.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no UUID subject.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["sub", "exp"]}
    if not settings.jwt_audience:
        options["verify_aud"] = False
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _verification_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    try:
        payload["sub"] = str(uuid.UUID(str(payload["sub"])))
    except ValueError:
        msg = "Token subject is not a valid user id"
        raise jwt.InvalidTokenError(msg) from None

    return payload
