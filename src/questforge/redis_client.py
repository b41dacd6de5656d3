"""Optional Redis connection shared by the rate limiter and XP broadcasts.

Redis is never required for correctness: every caller treats a missing
client (``get_redis`` raising RuntimeError) as "feature off".
"""

import redis.asyncio as redis

KEY_PREFIX = "qf"

_client: redis.Redis | None = None


def make_key(*parts: object) -> str:
    """Namespace a key, e.g. ``make_key("ratelimit", ip, window)``."""
    return ":".join([KEY_PREFIX, *(str(p) for p in parts)])


async def init_redis(url: str) -> None:
    """Create the client lazily; no connection is opened until first command."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        decode_responses=True,
        max_connections=20,
        socket_connect_timeout=2,
        socket_timeout=2,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    if _client is None:
        msg = "Redis is not configured for this process"
        raise RuntimeError(msg)
    return _client
