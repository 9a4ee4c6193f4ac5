"""
Background write-back of generated analyses.
Requests enqueue and return immediately; one worker task stores entries through AnalysisCache.
Failures are logged and dropped (no retry): the next identical request regenerates.
Bounded: when the queue is full the job is dropped. drain() flushes at shutdown.
"""
import asyncio
import logging
from dataclasses import dataclass

from app.services.analysis_cache import AnalysisCache
from app.services.errors import PersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistJob:
    user_id: str
    cv_hash: str
    cv_content: str
    filename: str
    analysis: str


class PersistenceQueue:
    def __init__(self, cache: AnalysisCache, maxsize: int = 100):
        self._cache = cache
        self._maxsize = maxsize
        self._queue: asyncio.Queue[PersistJob] | None = None
        self._worker: asyncio.Task | None = None
        self.stored = 0
        self.failed = 0
        self.dropped = 0

    def start(self) -> None:
        """Create the queue and worker on the running loop (call from lifespan)."""
        if self._worker is not None:
            return
        self._queue = asyncio.Queue(maxsize=self._maxsize)
        self._worker = asyncio.create_task(self._run())

    def submit(self, job: PersistJob) -> bool:
        """Non-blocking enqueue. Returns False if the job was dropped."""
        if self._queue is None or self._worker is None or self._worker.done():
            self.dropped += 1
            logger.error("Persistence worker not running; analysis for user %s not cached", job.user_id)
            return False
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Persistence queue full (%d); analysis for user %s not cached", self._maxsize, job.user_id
            )
            return False
        return True

    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def drain(self, timeout: float) -> None:
        """Graceful shutdown: wait up to timeout for queued jobs, then stop the worker."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self.join(), timeout=timeout)
            logger.info("Persistence queue drained (stored=%d failed=%d dropped=%d)", self.stored, self.failed, self.dropped)
        except asyncio.TimeoutError:
            logger.warning("Persistence queue drain timed out; %d analyses not cached", self.pending())
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._cache.put(job.user_id, job.cv_hash, job.cv_content, job.filename, job.analysis)
                self.stored += 1
            except PersistenceError:
                self.failed += 1
                logger.exception("Storing analysis failed for user %s (not retried)", job.user_id)
            except Exception:
                self.failed += 1
                logger.exception("Unexpected error storing analysis for user %s", job.user_id)
            finally:
                self._queue.task_done()
