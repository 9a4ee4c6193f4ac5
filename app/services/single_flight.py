"""
In-process single-flight: concurrent callers with the same key share one in-flight call.
The shared task is shielded, so a disconnecting caller does not cancel it for the others.
Scope is one process; duplicates across workers are still possible.
"""
import asyncio
from typing import Any, Awaitable, Callable, Hashable


class SingleFlight:
    def __init__(self):
        self._calls: dict[Hashable, asyncio.Future] = {}

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[Any]]) -> tuple[Any, bool]:
        """
        Run fn() unless a call for key is already in flight, then await that one instead.
        Returns (result, shared); shared is False only for the caller that ran fn.
        Exceptions from fn reach every caller.
        """
        task = self._calls.get(key)
        shared = task is not None
        if task is None:
            task = asyncio.ensure_future(fn())
            self._calls[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        return await asyncio.shield(task), shared

    def in_flight(self) -> int:
        return len(self._calls)

    def _forget(self, key: Hashable, task: asyncio.Future) -> None:
        if self._calls.get(key) is task:
            del self._calls[key]
