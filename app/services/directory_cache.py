"""Time-boxed cache for the manager list."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from app.models.directory import DirectoryCacheEntry, Manager
from app.services.directory_client import DirectoryClient

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60

ManagerFetch = Callable[[], Awaitable[list[Manager]]]


def directory_fetch(client: DirectoryClient) -> ManagerFetch:
    async def _fetch() -> list[Manager]:
        group_id = await client.resolve_group_id()
        return await client.fetch_members(group_id)

    return _fetch


class DirectoryCache:
    """Single-slot manager cache.

    A read within ``ttl`` seconds of the last successful refresh, with a
    non-empty list, is served without calling the directory. A failed refresh
    leaves the previous entry in place and propagates the error to the caller.
    """

    def __init__(
        self,
        fetch: ManagerFetch,
        *,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch = fetch
        self.ttl = ttl
        self._clock = clock
        self._entry: DirectoryCacheEntry | None = None
        self._lock = asyncio.Lock()

    @property
    def entry(self) -> DirectoryCacheEntry | None:
        return self._entry

    def _fresh(self, now: float) -> bool:
        entry = self._entry
        return entry is not None and bool(entry.managers) and now - entry.fetched_at < self.ttl

    def peek(self) -> list[Manager]:
        return list(self._entry.managers) if self._entry else []

    def find(self, manager_id: str) -> Manager | None:
        for manager in self.peek():
            if manager.id == manager_id:
                return manager
        return None

    async def get_managers(self) -> list[Manager]:
        if self._fresh(self._clock()):
            return self._entry.managers

        async with self._lock:
            # another waiter may have refreshed while we were queued
            started = self._clock()
            if self._fresh(started):
                return self._entry.managers

            managers = await self._fetch()
            self._store(DirectoryCacheEntry(fetched_at=started, managers=managers))
            logger.info("Directory cache refreshed with %d managers", len(managers))
            return managers

    def _store(self, entry: DirectoryCacheEntry) -> None:
        if self._entry is None or entry.fetched_at >= self._entry.fetched_at:
            self._entry = entry

    def clear(self) -> None:
        self._entry = None
