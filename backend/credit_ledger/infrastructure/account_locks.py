"""Account Locks — in-process mutual exclusion per account.

Invariants:
    - At most one balance-mutating unit of work per account per process at a time
    - Locks for idle accounts are garbage-collected (weak references)

Design Decisions:
    - asyncio.Lock per account serializes same-account purchases inside one worker;
      SELECT ... FOR UPDATE and the CAS update cover multiple workers
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from weakref import WeakValueDictionary


class AccountLockRegistry:
    """Hands out one asyncio.Lock per account id."""

    def __init__(self):
        self._locks: WeakValueDictionary[int, asyncio.Lock] = WeakValueDictionary()

    def lock_for(self, account_id: int) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, account_id: int) -> AsyncGenerator[None, None]:
        lock = self.lock_for(account_id)
        async with lock:
            yield


# Process-wide registry shared by every request
account_locks = AccountLockRegistry()
