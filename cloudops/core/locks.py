"""Per-user serialization of read-modify-write sequences.

Recommendation regeneration (delete-then-insert) and actuate-then-track both
run under the lock of the user they touch, whether they were triggered by a
request or by a scheduled job. Locks are process-local and only kept while
some operation holds or waits on them.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

logger = logging.getLogger(__name__)


class UserLockRegistry:
    """Lazily created ``asyncio.Lock`` per user id."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def get_lock(self, user_id: str) -> asyncio.Lock:
        """Return the lock for ``user_id``, creating it on first use."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's lock for the duration of the block."""
        lock = self.get_lock(user_id)
        if lock.locked():
            logger.debug(f"Waiting for in-flight operation for user {user_id}")
        self._holders[user_id] = self._holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[user_id] -= 1
            if not self._holders[user_id]:
                # Nobody holds or waits on it any more
                del self._holders[user_id]
                self._locks.pop(user_id, None)

    def is_locked(self, user_id: str) -> bool:
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()


@lru_cache
def get_user_locks() -> UserLockRegistry:
    """Get the process-wide lock registry."""
    return UserLockRegistry()
