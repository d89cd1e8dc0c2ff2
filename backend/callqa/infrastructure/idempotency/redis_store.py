"""
Redis Idempotency Store
Shared dedup table backed by SET NX so every instance sees the same claims
"""
import logging
from typing import Optional

import redis.asyncio as redis

from callqa.domain.interfaces.idempotency_store import IdempotencyStore
from callqa.domain.models.base import now_ms
from callqa.infrastructure.idempotency.memory_store import InMemoryIdempotencyStore

logger = logging.getLogger(__name__)


class RedisIdempotencyStore(IdempotencyStore):
    """
    Atomic claims via `SET key value NX EX ttl`.

    If Redis cannot be reached at initialize(), the store runs in
    memory-only mode for the life of the process.
    """

    KEY_PREFIX = "callqa:transcription:processed:"

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int = 7 * 24 * 3600,
        client: Optional[redis.Redis] = None
    ):
        self._redis_url = redis_url
        self._ttl_seconds = ttl_seconds
        self._client = client
        self._fallback: Optional[InMemoryIdempotencyStore] = None

    async def initialize(self) -> None:
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True
            )
        try:
            await self._client.ping()
            logger.info(f"Idempotency store connected to Redis: {self._redis_url}")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            logger.warning("Idempotency store running in memory-only mode")
            self._fallback = InMemoryIdempotencyStore()

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}{key}"

    async def _ensure_ready(self) -> None:
        if self._client is None and self._fallback is None:
            await self.initialize()

    async def claim(self, key: str) -> bool:
        await self._ensure_ready()
        if self._fallback:
            return await self._fallback.claim(key)
        claimed = await self._client.set(self._key(key), now_ms(), nx=True, ex=self._ttl_seconds)
        return bool(claimed)

    async def release(self, key: str) -> None:
        await self._ensure_ready()
        if self._fallback:
            await self._fallback.release(key)
            return
        await self._client.delete(self._key(key))

    async def is_claimed(self, key: str) -> bool:
        await self._ensure_ready()
        if self._fallback:
            return await self._fallback.is_claimed(key)
        return bool(await self._client.exists(self._key(key)))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def backend(self) -> str:
        return "redis" if self._fallback is None else "memory (redis unavailable)"
