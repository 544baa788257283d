"""Redis connection pool for the HTTP edge.

Only the rate limiter and the readiness probe use Redis; ticket, points and
mission state live in the database, so the engine keeps working (without
rate limiting) when Redis was never initialized.
"""

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 50) -> None:
    """Create the pool; ``max_connections`` comes from ``redis_max_connections``."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Return the pool. Raises RuntimeError before ``init_redis``; callers treat that as "no Redis"."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool
