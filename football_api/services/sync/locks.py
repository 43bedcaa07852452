"""Per-league advisory locks for sync runs.

Two overlapping syncs of the same league would race on the same external
refs; each run holds its league's lock for its whole duration. The registry
is process-local: separate worker processes are not coordinated.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable


class LockRegistry:
    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    def get(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        async with self.get(key):
            yield


league_locks = LockRegistry()
