"""
Unit tests for idempotency stores
"""
import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from callqa.infrastructure.idempotency.memory_store import InMemoryIdempotencyStore
from callqa.infrastructure.idempotency.redis_store import RedisIdempotencyStore


class TestInMemoryStore:

    @pytest.mark.asyncio
    async def test_claim_once(self):
        store = InMemoryIdempotencyStore()

        assert await store.claim("job-1")
        assert not await store.claim("job-1")
        assert await store.is_claimed("job-1")

    @pytest.mark.asyncio
    async def test_release_allows_reclaim(self):
        store = InMemoryIdempotencyStore()
        await store.claim("job-1")
        await store.release("job-1")

        assert await store.claim("job-1")

    @pytest.mark.asyncio
    async def test_concurrent_claims_have_one_winner(self):
        """Test racing webhook and poll deliveries claim exactly once"""
        store = InMemoryIdempotencyStore()
        results = await asyncio.gather(*(store.claim("job-1") for _ in range(20)))
        assert results.count(True) == 1


def redis_client(set_result=True):
    client = MagicMock()
    client.ping = AsyncMock(return_value=True)
    client.set = AsyncMock(return_value=set_result)
    client.delete = AsyncMock(return_value=1)
    client.exists = AsyncMock(return_value=1)
    client.aclose = AsyncMock()
    return client


class TestRedisStore:
    """Test SET NX EX semantics and the memory fallback"""

    @pytest.mark.asyncio
    async def test_claim_uses_set_nx_with_ttl(self):
        client = redis_client()
        store = RedisIdempotencyStore("redis://localhost:6379", ttl_seconds=600, client=client)
        await store.initialize()

        assert await store.claim("job-1")

        args, kwargs = client.set.call_args
        assert args[0] == "callqa:transcription:processed:job-1"
        assert kwargs == {"nx": True, "ex": 600}
        assert store.backend == "redis"

    @pytest.mark.asyncio
    async def test_existing_key_is_not_claimed(self):
        store = RedisIdempotencyStore("redis://localhost:6379", client=redis_client(set_result=None))
        await store.initialize()

        assert not await store.claim("job-1")

    @pytest.mark.asyncio
    async def test_release_deletes_key(self):
        client = redis_client()
        store = RedisIdempotencyStore("redis://localhost:6379", client=client)
        await store.initialize()

        await store.release("job-1")
        client.delete.assert_awaited_once_with("callqa:transcription:processed:job-1")

    @pytest.mark.asyncio
    async def test_unreachable_redis_falls_back_to_memory(self):
        client = redis_client()
        client.ping = AsyncMock(side_effect=ConnectionError("refused"))
        store = RedisIdempotencyStore("redis://localhost:6379", client=client)
        await store.initialize()

        assert store.backend == "memory (redis unavailable)"
        assert await store.claim("job-1")
        assert not await store.claim("job-1")
        client.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_close(self):
        client = redis_client()
        store = RedisIdempotencyStore("redis://localhost:6379", client=client)
        await store.initialize()

        await store.close()
        client.aclose.assert_awaited_once()
