"""Invite code generation for guilds.

Codes are 8-character alphanumeric (A-Z, 0-9), generated server-side
with a cryptographic random source. Lookup is case-insensitive.
"""

from __future__ import annotations

import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questforge.db.models import Group

INVITE_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
INVITE_LENGTH = 8
MAX_ATTEMPTS = 10


def generate_invite_code() -> str:
    """Generate a cryptographically random 8-character invite code."""
    return "".join(secrets.choice(INVITE_CHARSET) for _ in range(INVITE_LENGTH))


def normalize_invite_code(code: str) -> str:
    """Trim and uppercase an invite code for case-insensitive lookup."""
    return code.strip().upper()


async def generate_unique_invite_code(db: AsyncSession) -> str:
    """Generate an invite code that doesn't already exist in the database."""
    for _ in range(MAX_ATTEMPTS):
        code = generate_invite_code()
        existing = await db.execute(select(Group.id).where(Group.invite_code == code))
        if existing.scalar_one_or_none() is None:
            return code
    msg = f"Failed to generate unique invite code after {MAX_ATTEMPTS} attempts"
    raise RuntimeError(msg)
