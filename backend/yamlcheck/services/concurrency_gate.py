"""Concurrency gate - bounds simultaneous tool invocations."""

import asyncio
import itertools
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional


def default_capacity() -> int:
    """A small multiple of available parallelism, capped at 4."""
    return min(4, 2 * (os.cpu_count() or 1))


@dataclass(frozen=True)
class Permit:
    """Proof of admission. Hand it back to release()."""

    id: int


class ConcurrencyGate:
    """Counting admission control over asyncio.Semaphore.

    Waiters are woken in FIFO order, so sustained load can't starve anyone.
    The number of outstanding permits never exceeds ``capacity``.
    """

    def __init__(self, capacity: Optional[int] = None):
        if capacity is None or capacity < 1:
            capacity = default_capacity()
        self.capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._outstanding: set[int] = set()
        self._ids = itertools.count(1)
        self.peak = 0

    @property
    def in_use(self) -> int:
        return len(self._outstanding)

    async def acquire(self) -> Permit:
        """Suspend until a slot is free, then take it."""
        await self._semaphore.acquire()
        permit = Permit(next(self._ids))
        self._outstanding.add(permit.id)
        self.peak = max(self.peak, len(self._outstanding))
        return permit

    def release(self, permit: Permit) -> None:
        if permit.id not in self._outstanding:
            raise RuntimeError(f"Permit {permit.id} is not outstanding")
        self._outstanding.remove(permit.id)
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[Permit]:
        """Hold a permit for the duration of the block, on every exit path."""
        permit = await self.acquire()
        try:
            yield permit
        finally:
            self.release(permit)
