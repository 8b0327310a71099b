"""In-process serialization of compute-and-write per period."""
import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator


class PeriodLocks:
    """
    Registry of ``asyncio.Lock`` objects keyed by period.

    Holding the lock of a period around read-compute-write makes concurrent
    recomputations of that period in one process run one after another.
    Different periods never block each other. Nothing is coordinated across
    processes.
    """

    def __init__(self):
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, period: str) -> AsyncIterator[None]:
        async with self._locks[period]:
            yield

    def is_locked(self, period: str) -> bool:
        lock = self._locks.get(period)
        return lock is not None and lock.locked()
