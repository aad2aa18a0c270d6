"""Redis adapter tests against a throwaway container."""

import pytest

pytest.importorskip("redis")
pytest.importorskip("testcontainers")

import json

import redis.asyncio
from testcontainers.redis import RedisContainer

from querylite import CacheEntry, InitialOptions, Mutation, Query, with_ttl
from querylite.adapters.redis import AsyncRedisAdapter
from querylite.ttl import now_ms


@pytest.fixture(scope="module")
def redis_url():
    with RedisContainer() as container:
        host = container.get_container_host_ip()
        port = container.get_exposed_port(6379)
        yield f"redis://{host}:{port}/0"


@pytest.fixture
async def client(redis_url):
    client = redis.asyncio.Redis.from_url(redis_url)
    await client.flushdb()
    return client


@pytest.fixture
async def adapter(client):
    adapter = AsyncRedisAdapter(client, prefix="qt")
    yield adapter
    await adapter.aclose()


class TestStorage:
    """Envelope storage and Redis-side expiry."""

    async def test_missing_key(self, adapter: AsyncRedisAdapter) -> None:
        assert await adapter.get("todo:1") is None

    async def test_envelope_layout(self, adapter: AsyncRedisAdapter, client) -> None:
        """Entries are stored as JSON envelopes under the namespaced key."""
        entry = CacheEntry(value={"title": "milk"}, expires_at=now_ms() + 60_000)
        await adapter.set("todo:1", entry)

        raw = json.loads(await client.get("qt:cache:todo:1"))
        assert raw["value"] == {"title": "milk"}
        assert raw["expiry"] == entry.expires_at

        assert await adapter.get("todo:1") == entry

    async def test_expiry_mirrored_in_redis(
        self, adapter: AsyncRedisAdapter, client
    ) -> None:
        await adapter.set("short", with_ttl("v", 5_000))
        assert 0 < await client.pttl("qt:cache:short") <= 5_000

    async def test_no_expiry(self, adapter: AsyncRedisAdapter, client) -> None:
        await adapter.set("forever", CacheEntry(value=1, expires_at=None))

        assert await client.pttl("qt:cache:forever") == -1
        stored = await adapter.get("forever")
        assert stored is not None
        assert stored.expires_at is None

    async def test_delete(self, adapter: AsyncRedisAdapter) -> None:
        await adapter.set("todo:1", with_ttl("v", 60_000))
        await adapter.delete("todo:1")
        assert await adapter.get("todo:1") is None

    async def test_clear_keeps_other_namespaces(
        self, adapter: AsyncRedisAdapter, client
    ) -> None:
        for n in range(150):
            await adapter.set(f"k{n}", with_ttl(n, 60_000))
        await client.set("other:cache:k0", "untouched")

        await adapter.clear()

        assert await client.keys("qt:cache:*") == []
        assert await client.get("other:cache:k0") == b"untouched"


class TestSharedCache:
    """Coordinators talking through Redis."""

    async def test_query_starts_from_mutation_commit(
        self, adapter: AsyncRedisAdapter
    ) -> None:
        async def patch(todo: dict) -> dict:
            return todo

        mutation: Mutation[dict, dict] = Mutation(
            patch=patch, adapter=adapter, keys=["todo", "7"]
        )
        await mutation.mutate({"id": "7", "done": True})

        async def fetch() -> dict:
            raise AssertionError("served from cache")

        query: Query[dict] = Query(
            keys=["todo", "7"],
            fn=fetch,
            adapter=adapter,
            initial=InitialOptions(always_fetch=False),
        )
        await query.settled()
        query.close()

        assert query.data == {"id": "7", "done": True}
        assert query.error is None
