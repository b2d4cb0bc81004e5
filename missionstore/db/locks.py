from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class DroneLocks:
    """
    One asyncio.Lock per drone id.

    Mission replace/clear, drone delete and status changes for the same drone
    run one at a time; different drones never wait on each other. Readers do
    not take these locks.
    """

    def __init__(self) -> None:
        self._locks: Dict[int, asyncio.Lock] = {}
        self._users: Dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, drone_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(drone_id)
        if lock is None:
            lock = self._locks[drone_id] = asyncio.Lock()
        self._users[drone_id] = self._users.get(drone_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[drone_id] -= 1
            if self._users[drone_id] == 0:
                # nobody holds or waits on it any more
                del self._users[drone_id]
                del self._locks[drone_id]

    def is_locked(self, drone_id: int) -> bool:
        lock = self._locks.get(drone_id)
        return lock is not None and lock.locked()
