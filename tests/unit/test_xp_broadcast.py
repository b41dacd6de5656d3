"""Unit tests for the best-effort xp_awarded broadcast."""

import json

import pytest

from questforge.progression.events import XP_AWARDED_CHANNEL, publish_xp_awarded


class _RecordingRedis:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.published: list[tuple[str, str]] = []

    async def publish(self, channel: str, message: str) -> int:
        if self.fail:
            raise ConnectionError("redis down")
        self.published.append((channel, message))
        return 1


class TestPublishXPAwarded:

    @pytest.mark.asyncio
    async def test_payload(self):
        redis = _RecordingRedis()
        await publish_xp_awarded("u1", "quest_completion", 20, 120, redis=redis)

        channel, message = redis.published[0]
        assert channel == XP_AWARDED_CHANNEL == "qf:pubsub:xp_awarded"
        assert json.loads(message) == {
            "user_id": "u1",
            "source_type": "quest_completion",
            "amount": 20,
            "total_xp": 120,
            "level": 2,
        }

    @pytest.mark.asyncio
    async def test_publish_failure_is_swallowed(self):
        await publish_xp_awarded("u1", "workout_log", 40, 40, redis=_RecordingRedis(fail=True))

    @pytest.mark.asyncio
    async def test_skipped_without_redis(self):
        # No client configured in the test process
        await publish_xp_awarded("u1", "workout_log", 40, 40)
