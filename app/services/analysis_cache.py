"""
AnalysisCache: scoped lookup/store of CV analyses keyed by (user_id, cv_hash).
- DB (cv_analyses) is the source of truth; Redis, when configured, is a Cache-Aside hot layer.
- Lookup failures raise CacheInfrastructureError, never a silent miss; the caller picks the policy.
- Store failures raise PersistenceError.
- Every read is filtered by user_id and re-checked before return: no cross-user leakage.
Each operation opens its own session, so it is safe to call after the request session is gone.
"""
import asyncio
import logging
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.repositories.analysis_repository import AnalysisRepository
from app.schemas.analysis import CachedAnalysis
from app.services.errors import CacheInfrastructureError, PersistenceError
from app.services.redis_analysis_cache import RedisAnalysisCache

logger = logging.getLogger(__name__)


class AnalysisCache:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        repository: AnalysisRepository | None = None,
        redis_cache: RedisAnalysisCache | None = None,
    ):
        self._session_factory = session_factory
        self._repo = repository or AnalysisRepository()
        self._redis = redis_cache

    async def get(self, user_id: str, cv_hash: str) -> CachedAnalysis | None:
        """Cache-Aside: Redis first; on miss read DB and warm Redis. None = genuine miss."""
        if self._redis:
            entry = await self._redis.get(user_id, cv_hash)
            if entry is not None and entry.user_id == user_id and entry.cv_hash == cv_hash:
                return entry
        loop = asyncio.get_event_loop()
        try:
            entry = await loop.run_in_executor(None, lambda: self._read(user_id, cv_hash))
        except SQLAlchemyError as e:
            raise CacheInfrastructureError(f"Analysis cache lookup failed: {e}") from e
        if entry is None:
            return None
        if entry.user_id != user_id:
            logger.error("Analysis cache returned a row for another user; ignoring it (requested %s)", user_id)
            return None
        if self._redis:
            await self._redis.set(entry)
        return entry

    async def put(
        self,
        user_id: str,
        cv_hash: str,
        cv_content: str,
        filename: str,
        analysis: str,
    ) -> CachedAnalysis:
        """Insert a new entry. A concurrent insert for the same key returns the row that won."""
        loop = asyncio.get_event_loop()
        try:
            entry = await loop.run_in_executor(
                None,
                lambda: self._write(user_id, cv_hash, cv_content, filename, analysis),
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Storing analysis failed: {e}") from e
        if self._redis:
            await self._redis.set(entry)
        return entry

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[CachedAnalysis]:
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, lambda: self._list(user_id, limit))
        except SQLAlchemyError as e:
            raise CacheInfrastructureError(f"Listing analyses failed: {e}") from e

    async def get_by_id(self, user_id: str, analysis_id: str) -> CachedAnalysis | None:
        """Entry owned by user_id, or None (also when the id belongs to someone else)."""
        loop = asyncio.get_event_loop()
        try:
            return await loop.run_in_executor(None, lambda: self._read_by_id(user_id, analysis_id))
        except SQLAlchemyError as e:
            raise CacheInfrastructureError(f"Analysis lookup failed: {e}") from e

    # ---- sync, executor side ----

    def _read(self, user_id: str, cv_hash: str) -> CachedAnalysis | None:
        db = self._session_factory()
        try:
            row = self._repo.get_analysis(db, user_id, cv_hash)
            return CachedAnalysis.model_validate(row) if row else None
        finally:
            db.close()

    def _read_by_id(self, user_id: str, analysis_id: str) -> CachedAnalysis | None:
        db = self._session_factory()
        try:
            row = self._repo.get_analysis_by_id(db, user_id, analysis_id)
            return CachedAnalysis.model_validate(row) if row else None
        finally:
            db.close()

    def _list(self, user_id: str, limit: int) -> list[CachedAnalysis]:
        db = self._session_factory()
        try:
            return [CachedAnalysis.model_validate(r) for r in self._repo.list_analyses(db, user_id, limit)]
        finally:
            db.close()

    def _write(
        self,
        user_id: str,
        cv_hash: str,
        cv_content: str,
        filename: str,
        analysis: str,
    ) -> CachedAnalysis:
        db = self._session_factory()
        try:
            try:
                row = self._repo.insert_analysis(db, user_id, cv_hash, cv_content, filename, analysis)
            except IntegrityError:
                db.rollback()
                row = self._repo.get_analysis(db, user_id, cv_hash)
                if row is None:
                    raise
                logger.info("Analysis for user %s was already stored by a concurrent request", user_id)
            return CachedAnalysis.model_validate(row)
        finally:
            db.close()
