from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.directory import DirectoryCacheEntry
from app.services.directory_cache import DirectoryCache, directory_fetch
from tests.conftest import make_manager

MANAGERS = [make_manager("m1", "Ada Lovelace", "ada@contoso.com"), make_manager("m2", "Grace Hopper")]


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.anyio
async def test_two_reads_within_ttl_fetch_once():
    fetch = AsyncMock(return_value=MANAGERS)
    clock = FakeClock()
    cache = DirectoryCache(fetch, ttl=300, clock=clock)

    first = await cache.get_managers()
    clock.now += 299
    second = await cache.get_managers()

    assert first == second == MANAGERS
    assert fetch.await_count == 1


@pytest.mark.anyio
async def test_expired_entry_refetches_and_replaces():
    fetch = AsyncMock(side_effect=[MANAGERS, MANAGERS[:1]])
    clock = FakeClock()
    cache = DirectoryCache(fetch, ttl=300, clock=clock)

    await cache.get_managers()
    clock.now += 300
    refreshed = await cache.get_managers()

    assert refreshed == MANAGERS[:1]
    assert cache.entry.fetched_at == clock.now
    assert fetch.await_count == 2


@pytest.mark.anyio
async def test_empty_list_is_never_served_from_cache():
    fetch = AsyncMock(side_effect=[[], MANAGERS])
    cache = DirectoryCache(fetch, clock=FakeClock())

    assert await cache.get_managers() == []
    assert await cache.get_managers() == MANAGERS
    assert fetch.await_count == 2


@pytest.mark.anyio
async def test_failed_refresh_keeps_stale_entry():
    fetch = AsyncMock(side_effect=[MANAGERS, RuntimeError("graph down")])
    clock = FakeClock()
    cache = DirectoryCache(fetch, ttl=60, clock=clock)

    await cache.get_managers()
    clock.now += 120
    with pytest.raises(RuntimeError):
        await cache.get_managers()

    assert cache.peek() == MANAGERS
    assert cache.entry.fetched_at == 1_000.0


@pytest.mark.anyio
async def test_concurrent_misses_share_one_refresh():
    release = asyncio.Event()
    calls = 0

    async def slow_fetch():
        nonlocal calls
        calls += 1
        await release.wait()
        return MANAGERS

    cache = DirectoryCache(slow_fetch, clock=FakeClock())
    first = asyncio.ensure_future(cache.get_managers())
    second = asyncio.ensure_future(cache.get_managers())
    await asyncio.sleep(0)
    release.set()

    assert await first == MANAGERS
    assert await second == MANAGERS
    assert calls == 1


def test_older_write_does_not_replace_newer_entry():
    cache = DirectoryCache(AsyncMock(), clock=FakeClock())

    cache._store(DirectoryCacheEntry(fetched_at=200.0, managers=MANAGERS))
    cache._store(DirectoryCacheEntry(fetched_at=100.0, managers=[]))

    assert cache.entry.fetched_at == 200.0
    assert cache.peek() == MANAGERS


def test_peek_and_find_never_fetch():
    fetch = AsyncMock()
    cache = DirectoryCache(fetch, clock=FakeClock())

    assert cache.peek() == []
    assert cache.find("m1") is None
    fetch.assert_not_called()


@pytest.mark.anyio
async def test_directory_fetch_resolves_then_fetches():
    client = MagicMock()
    client.resolve_group_id = AsyncMock(return_value="gid")
    client.fetch_members = AsyncMock(return_value=MANAGERS)

    assert await directory_fetch(client)() == MANAGERS
    client.fetch_members.assert_awaited_once_with("gid")
