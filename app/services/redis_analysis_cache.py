"""
Redis hot cache for CV analyses. Cache-Aside: the cv_analyses table is the source of truth.
All Redis errors are handled internally; never raise to caller. System works if Redis is down.
Key: cv_analysis:{user_id}:{cv_hash}, JSON of CachedAnalysis, expiring after ttl_seconds.
"""
import logging
from typing import Any

from pydantic import ValidationError

from app.schemas.analysis import CachedAnalysis

logger = logging.getLogger(__name__)

ANALYSIS_KEY_PREFIX = "cv_analysis:"


def _key(user_id: str, cv_hash: str) -> str:
    return f"{ANALYSIS_KEY_PREFIX}{user_id}:{cv_hash}"


class RedisAnalysisCache:
    """
    Async Redis cache for analysis entries. STRING-based: GET, SET EX.
    All methods swallow Redis errors and log; caller gets None or no-op on failure.
    """

    def __init__(self, redis_client: Any, ttl_seconds: int):
        self._redis = redis_client
        self._ttl = ttl_seconds

    async def get(self, user_id: str, cv_hash: str) -> CachedAnalysis | None:
        """Returns the entry or None on miss/error (caller should hit DB)."""
        if not self._redis:
            return None
        try:
            raw = await self._redis.get(_key(user_id, cv_hash))
            if not raw:
                return None
            s = raw.decode() if isinstance(raw, bytes) else raw
            return CachedAnalysis.model_validate_json(s)
        except ValidationError:
            logger.warning("Discarding unreadable Redis analysis entry for user %s", user_id)
            return None
        except Exception as e:
            logger.warning("Redis analysis cache get failed for user %s: %s", user_id, e, exc_info=False)
            return None

    async def set(self, entry: CachedAnalysis) -> None:
        """After DB read or write: SET with EXPIRE. On Redis error: log only, do not raise."""
        if not self._redis:
            return
        try:
            await self._redis.set(_key(entry.user_id, entry.cv_hash), entry.model_dump_json(), ex=self._ttl)
        except Exception as e:
            logger.warning("Redis analysis cache set failed for user %s: %s", entry.user_id, e, exc_info=False)
