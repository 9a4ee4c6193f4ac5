"""
Redis connection for the analysis hot cache.
Opened once by the lifespan and kept on app.state. Without REDIS_URL, or when the startup
ping fails, the service runs on the database alone until the next restart.
"""
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


def _display(url: str) -> str:
    # drop credentials from log lines
    return url.rsplit("@", 1)[-1]


async def connect_redis(url: str) -> Redis | None:
    url = (url or "").strip()
    if not url:
        logger.info("REDIS_URL not set; analyses are cached in the database only")
        return None
    client = Redis.from_url(url, decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("Redis at %s unavailable, analysis hot cache disabled: %s", _display(url), e)
        await client.aclose()
        return None
    logger.info("Redis analysis hot cache connected: %s", _display(url))
    return client


async def redis_health(client: Redis | None) -> dict[str, str]:
    """Status of the startup connection for /health. Never reconnects."""
    if client is None:
        return {"redis": "unavailable"}
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        return {"redis": "error", "message": str(e)}
    return {"redis": "ok"}


async def close_redis(client: Redis | None) -> None:
    if client is None:
        return
    try:
        await client.aclose()
    except (RedisError, OSError) as e:
        logger.warning("Redis close error: %s", e)
