import asyncio
from unittest.mock import AsyncMock

import pytest

from app.database import SessionLocal
from app.models import CvAnalysis
from app.services.analysis_cache import AnalysisCache
from app.services.errors import PersistenceError
from app.services.persistence_queue import PersistenceQueue, PersistJob


def _job(user_id="u1", cv="cv text", analysis="analysis"):
    return PersistJob(user_id=user_id, cv_hash=f"{user_id}-hash", cv_content=cv, filename="CV-2026-10-19", analysis=analysis)


@pytest.mark.asyncio
async def test_jobs_are_stored(db_session):
    queue = PersistenceQueue(AnalysisCache(SessionLocal))
    queue.start()
    assert queue.submit(_job("u1"))
    assert queue.submit(_job("u2"))
    await queue.drain(timeout=5)

    assert queue.stored == 2
    assert {r.user_id for r in db_session.query(CvAnalysis).all()} == {"u1", "u2"}


@pytest.mark.asyncio
async def test_failure_is_logged_and_worker_keeps_going(caplog):
    cache = AsyncMock()
    cache.put.side_effect = [PersistenceError("db down"), None]
    queue = PersistenceQueue(cache)
    queue.start()
    queue.submit(_job("u1"))
    queue.submit(_job("u2"))
    await queue.join()

    assert queue.failed == 1
    assert queue.stored == 1
    assert cache.put.await_count == 2
    assert "Storing analysis failed for user u1" in caplog.text
    await queue.drain(timeout=1)


@pytest.mark.asyncio
async def test_full_queue_drops_job():
    release = asyncio.Event()
    cache = AsyncMock()

    async def slow_put(*args):
        await release.wait()

    cache.put.side_effect = slow_put
    queue = PersistenceQueue(cache, maxsize=1)
    queue.start()
    assert queue.submit(_job("u1"))
    await asyncio.sleep(0)  # worker takes u1 and blocks
    assert queue.submit(_job("u2"))
    assert not queue.submit(_job("u3"))
    assert queue.dropped == 1

    release.set()
    await queue.drain(timeout=5)
    assert queue.stored == 2


@pytest.mark.asyncio
async def test_submit_before_start_is_dropped():
    queue = PersistenceQueue(AsyncMock())
    assert not queue.submit(_job())
    assert queue.dropped == 1


@pytest.mark.asyncio
async def test_drain_timeout_abandons_pending(caplog):
    cache = AsyncMock()

    async def never(*args):
        await asyncio.Event().wait()

    cache.put.side_effect = never
    queue = PersistenceQueue(cache)
    queue.start()
    queue.submit(_job("u1"))
    queue.submit(_job("u2"))
    await queue.drain(timeout=0.05)
    assert "drain timed out" in caplog.text
