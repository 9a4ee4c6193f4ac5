"""
CV analysis orchestration:
authenticate -> validate -> fingerprint -> cache lookup -> (miss) generate -> respond -> enqueue write-back.
- Cache lookup errors follow CacheErrorPolicy (fail-open: log + miss, fail-closed: raise).
- Generation errors surface as GenerationError; no retry here, nothing is stored.
- The write-back never delays the response and its failures never reach the caller.
"""
import asyncio
import functools
import logging
from datetime import datetime, timezone
from typing import Callable

from app.auth import TokenVerifier, extract_subject
from app.config import CacheErrorPolicy
from app.schemas.analysis import AnalyzeRequest, AnalyzeResponse, CachedAnalysis, format_timestamp
from app.services import ai_service
from app.services.analysis_cache import AnalysisCache
from app.services.errors import CacheInfrastructureError, GenerationError, InvalidInputError
from app.services.fingerprint import fingerprint
from app.services.persistence_queue import PersistenceQueue, PersistJob
from app.services.single_flight import SingleFlight

logger = logging.getLogger(__name__)


def make_label(now: datetime | None = None) -> str:
    """Display name for a stored analysis, e.g. CV-2026-10-19 (UTC date)."""
    now = now or datetime.now(timezone.utc)
    return f"CV-{now:%Y-%m-%d}"


class AnalysisGateway:
    def __init__(
        self,
        verifier: TokenVerifier,
        cache: AnalysisCache,
        persistence: PersistenceQueue,
        generator: Callable[[str, str], str] | None = None,
        cache_error_policy: CacheErrorPolicy = CacheErrorPolicy.FAIL_OPEN,
        single_flight: SingleFlight | None = None,
        generation_timeout: float | None = None,
    ):
        self._verifier = verifier
        self._cache = cache
        self._persistence = persistence
        self._generator = generator or ai_service.generate_cv_analysis
        self._policy = cache_error_policy
        self._single_flight = single_flight
        self._generation_timeout = generation_timeout or None

    async def analyze(self, authorization: str | None, body: AnalyzeRequest) -> AnalyzeResponse:
        user_id = extract_subject(authorization, self._verifier)

        cv_content = body.cv_content or ""
        if not cv_content:
            raise InvalidInputError("CV content is required")

        cv_hash = fingerprint(cv_content)
        cached = await self._lookup(user_id, cv_hash)
        if cached is not None:
            return AnalyzeResponse(
                analysis=cached.analysis,
                from_cache=True,
                cached_at=format_timestamp(cached.created_at),
                filename=cached.filename,
            )

        instruction = body.prompt or ""
        generate = functools.partial(self._generate_and_enqueue, user_id, cv_hash, cv_content, instruction)
        if self._single_flight is not None:
            analysis, _ = await self._single_flight.do((user_id, cv_hash), generate)
        else:
            analysis = await asyncio.shield(asyncio.ensure_future(generate()))
        return AnalyzeResponse(analysis=analysis, from_cache=False)

    async def list_analyses(self, user_id: str, limit: int = 50) -> list[CachedAnalysis]:
        return await self._cache.list_for_user(user_id, limit)

    async def get_analysis(self, user_id: str, analysis_id: str) -> CachedAnalysis | None:
        return await self._cache.get_by_id(user_id, analysis_id)

    async def _lookup(self, user_id: str, cv_hash: str) -> CachedAnalysis | None:
        try:
            return await self._cache.get(user_id, cv_hash)
        except CacheInfrastructureError as e:
            if self._policy == CacheErrorPolicy.FAIL_CLOSED:
                raise
            logger.warning("Analysis cache lookup failed for user %s, treating as miss: %s", user_id, e)
            return None

    async def _generate_and_enqueue(self, user_id: str, cv_hash: str, cv_content: str, instruction: str) -> str:
        # Scheduled as its own task, so the write-back is enqueued even if the caller is cancelled.
        analysis = await self._generate(user_id, cv_content, instruction)
        self._persistence.submit(
            PersistJob(
                user_id=user_id,
                cv_hash=cv_hash,
                cv_content=cv_content,
                filename=make_label(),
                analysis=analysis,
            )
        )
        return analysis

    async def _generate(self, user_id: str, cv_content: str, instruction: str) -> str:
        # Runs to completion even if the caller disconnects; the timeout only stops the wait.
        loop = asyncio.get_event_loop()
        call = loop.run_in_executor(None, self._generator, cv_content, instruction)
        try:
            if self._generation_timeout:
                return await asyncio.wait_for(call, timeout=self._generation_timeout)
            return await call
        except asyncio.TimeoutError as e:
            logger.warning("CV analysis generation timed out for user %s", user_id)
            raise GenerationError(f"Generation timed out after {self._generation_timeout}s") from e
        except Exception as e:
            logger.exception("CV analysis generation failed for user %s", user_id)
            raise GenerationError(str(e) or type(e).__name__) from e
