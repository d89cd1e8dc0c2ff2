"""
In-Memory Idempotency Store
Single-process dedup table. Does not survive restarts.
"""
import asyncio
from typing import Set

from callqa.domain.interfaces.idempotency_store import IdempotencyStore


class InMemoryIdempotencyStore(IdempotencyStore):

    def __init__(self):
        self._keys: Set[str] = set()
        self._lock = asyncio.Lock()

    async def claim(self, key: str) -> bool:
        async with self._lock:
            if key in self._keys:
                return False
            self._keys.add(key)
            return True

    async def release(self, key: str) -> None:
        async with self._lock:
            self._keys.discard(key)

    async def is_claimed(self, key: str) -> bool:
        return key in self._keys

    @property
    def backend(self) -> str:
        return "memory"
