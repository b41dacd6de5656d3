"""Level computation from total XP.

Flat curve: every 100 XP is one level, starting at level 1. Must match the
client's ``levelFromXp`` exactly.
"""

from __future__ import annotations

XP_PER_LEVEL = 100


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP."""
    xp = max(0, total_xp)
    level = xp // XP_PER_LEVEL + 1

    return {
        "level": level,
        "xp_into_level": xp - (level - 1) * XP_PER_LEVEL,
        "xp_for_level": XP_PER_LEVEL,
        "next_level": level + 1,
    }
