"""Redis-backed discovery caches: hits, fallback and invalidation."""

from fnmatch import fnmatch
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from storefinder.schemas import RatedStore, ReviewCreate, StoreCreate, StoreUpdate, TagCount
from storefinder.services.discovery import DiscoveryEngine
from storefinder.services.stores import add_review, create_store, update_store
from storefinder.stores import redis as redis_store

from tests.factories import make_review


class FakeRedis:
    """The subset of redis.asyncio.Redis used by the cache helpers."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)

    async def scan_iter(self, match: str = "*"):
        for key in list(self.data):
            if fnmatch(key, match):
                yield key


class DownRedis(FakeRedis):
    async def get(self, key: str) -> str | None:
        raise RedisConnectionError("connection refused")

    async def setex(self, key: str, ttl: int, value: str) -> None:
        raise RedisConnectionError("connection refused")


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> FakeRedis:
    client = FakeRedis()
    monkeypatch.setattr(redis_store, "_redis", client)
    return client


@pytest.mark.asyncio
async def test_top_rated_served_from_cache(repo, add_store, fake_redis):
    store = await add_store("Durand Coffee")
    await repo.add_review(make_review(store.id, 4))
    engine = DiscoveryEngine(repo)

    first = await engine.top_rated(10)
    assert "stores:top:10" in fake_redis.data
    assert fake_redis.ttls["stores:top:10"] == redis_store.TTL_TOP_STORES

    # Written straight to the repository, so nothing invalidates the cache.
    await repo.add_review(make_review(store.id, 1))
    cached = await engine.top_rated(10)

    assert all(isinstance(r, RatedStore) for r in cached)
    assert cached == first
    assert cached[0].average_rating == 4.0


@pytest.mark.asyncio
async def test_cached_ranking_keeps_stored_photo(repo, add_store, fake_redis):
    store = await add_store("Durand Coffee")
    await repo.add_review(make_review(store.id, 5))
    engine = DiscoveryEngine(repo)

    await engine.top_rated(10)
    [cached] = await engine.top_rated(10)

    assert cached.store.photo is None
    assert cached.store == await repo.get_by_id(store.id)


@pytest.mark.asyncio
async def test_new_review_invalidates_top_rated(repo, add_store, fake_redis):
    good = await add_store("Good")
    okay = await add_store("Okay")
    await repo.add_review(make_review(good.id, 4))
    await repo.add_review(make_review(okay.id, 4))
    engine = DiscoveryEngine(repo)
    before = await engine.top_rated(10)
    assert [r.store.name for r in before] == ["Good", "Okay"]
    await engine.top_rated(5)

    await add_review(repo, okay.id, uuid4(), ReviewCreate(rating=5))

    assert not any(key.startswith("stores:top:") for key in fake_redis.data)
    ranked = await engine.top_rated(10)
    assert [r.store.name for r in ranked] == ["Okay", "Good"]


@pytest.mark.asyncio
async def test_tag_list_served_from_cache(repo, add_store, fake_redis):
    await add_store("A", tags=["Wifi"])
    engine = DiscoveryEngine(repo)

    await engine.list_by_tag(None)
    await add_store("B", tags=["Licensed"])
    listing = await engine.list_by_tag(None)

    assert listing.tags == [TagCount(tag="Wifi", count=1)]
    # The store list itself is never cached.
    assert sorted(s.name for s in listing.stores) == ["A", "B"]


@pytest.mark.asyncio
async def test_store_writes_invalidate_caches(repo, fake_redis):
    owner = uuid4()
    engine = DiscoveryEngine(repo)
    store = await create_store(repo, StoreCreate(name="Durand Coffee", tags=["Wifi"]), owner)

    await engine.list_by_tag(None)
    await engine.top_rated(10)

    await update_store(repo, store.id, StoreUpdate(description="Espresso"), owner)
    assert "tags:list" in fake_redis.data
    assert "stores:top:10" not in fake_redis.data

    await update_store(repo, store.id, StoreUpdate(tags=["Wifi", "Vegetarian"]), owner)
    assert "tags:list" not in fake_redis.data
    listing = await engine.list_by_tag(None)
    assert {t.tag for t in listing.tags} == {"Wifi", "Vegetarian"}

    await create_store(repo, StoreCreate(name="Saigon Sushi", tags=["Licensed"]), owner)
    assert "tags:list" not in fake_redis.data


@pytest.mark.asyncio
async def test_unavailable_redis_falls_back_to_repository(repo, add_store, monkeypatch):
    monkeypatch.setattr(redis_store, "_redis", DownRedis())
    store = await add_store("Durand Coffee", tags=["Wifi"])
    await repo.add_review(make_review(store.id, 5))
    engine = DiscoveryEngine(repo)

    ranked = await engine.top_rated(10)
    listing = await engine.list_by_tag(None)

    assert [r.store.name for r in ranked] == ["Durand Coffee"]
    assert [t.tag for t in listing.tags] == ["Wifi"]
