import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger


class KeyedLock:
    """In-process async locks keyed by a resource id.

    Entries are created on first use and dropped once no coroutine holds
    or waits on them, so the map only grows with concurrently busy keys.
    """

    def __init__(self, lock_prefix: str = "lock"):
        self.lock_prefix = lock_prefix
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def _make_lock_key(self, *parts) -> str:
        return f"{self.lock_prefix}:{':'.join(str(part) for part in parts)}"

    @asynccontextmanager
    async def hold(self, *key_parts) -> AsyncIterator[None]:
        key = self._make_lock_key(*key_parts)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                logger.trace("Acquired {}", key)
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] <= 0:
                self._holders.pop(key, None)
                self._locks.pop(key, None)

    def is_locked(self, *key_parts) -> bool:
        lock = self._locks.get(self._make_lock_key(*key_parts))
        return bool(lock and lock.locked())

    def __len__(self) -> int:
        return len(self._locks)
