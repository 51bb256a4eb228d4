"""Per-pair asyncio locks.

Serializes check-then-write sequences (duplicate checks followed by a
write) for one unordered user pair within this process. Locks are held
weakly and disappear once no coroutine is using them.
"""

import asyncio
import weakref

from ..models.connection import UserPair


class PairLocks:
    """Registry handing out one ``asyncio.Lock`` per unordered pair."""

    def __init__(self):
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def __call__(self, pair: UserPair) -> asyncio.Lock:
        lock = self._locks.get(pair.key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[pair.key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
