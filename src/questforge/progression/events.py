"""Best-effort broadcast of granted XP for activity feeds and overlays.

Published only after the transaction that recorded the award commits. A
failure to publish never affects the award itself.
"""

from __future__ import annotations

import json
import logging

from questforge.progression.levels import compute_level
from questforge.redis_client import get_redis, make_key

logger = logging.getLogger(__name__)

XP_AWARDED_CHANNEL = make_key("pubsub", "xp_awarded")


async def publish_xp_awarded(
    user_id: str,
    source_type: str,
    amount: int,
    total_xp: int,
    redis: object | None = None,
) -> None:
    """Publish an ``xp_awarded`` event. Silently skipped without Redis."""
    if redis is None:
        try:
            redis = get_redis()
        except RuntimeError:
            return

    try:
        await redis.publish(  # type: ignore[union-attr]
            XP_AWARDED_CHANNEL,
            json.dumps({
                "user_id": user_id,
                "source_type": source_type,
                "amount": amount,
                "total_xp": total_xp,
                "level": compute_level(total_xp)["level"],
            }),
        )
    except Exception:
        logger.warning("Failed to publish xp_awarded broadcast", exc_info=True)
