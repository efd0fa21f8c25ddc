"""Queue health probe: polls the health endpoint and reports a UI status."""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlparse

from app.models.health import HealthStatus

logger = logging.getLogger(__name__)

CHECK_TIMEOUT_SECONDS = 8.0
POLL_INTERVAL_SECONDS = 30.0

HealthFetch = Callable[[], Awaitable[tuple[int, dict[str, Any] | None]]]
StatusListener = Callable[[HealthStatus, str], None]

_LABELS = {
    HealthStatus.CHECKING: "Checking…",
    HealthStatus.DEGRADED: "Degraded",
    HealthStatus.ERROR: "Error",
    HealthStatus.OFFLINE: "Offline",
}


def dns_connectivity(url: str) -> Callable[[], bool]:
    """Connectivity check that reports offline when the health host cannot be resolved."""
    host = urlparse(url).hostname or "localhost"

    def _online() -> bool:
        try:
            socket.getaddrinfo(host, None)
        except OSError:
            return False
        return True

    return _online


def ok_label(body: dict[str, Any]) -> str:
    name = body.get("queueName")
    if not name:
        return "OK"
    count = body.get("approximateMessageCount")
    if isinstance(count, int) and not isinstance(count, bool):
        return f"OK · {name} (~{count})"
    return f"OK · {name}"


class HealthProbe:
    """Reflects queue reachability as one of checking/ok/degraded/error/offline.

    Only one check is in flight per probe: starting a check cancels the
    previous one. ``check`` never raises; every failure maps to a status.
    """

    def __init__(
        self,
        fetch: HealthFetch,
        *,
        is_online: Callable[[], bool] = lambda: True,
        timeout: float = CHECK_TIMEOUT_SECONDS,
        interval: float = POLL_INTERVAL_SECONDS,
        on_change: StatusListener | None = None,
    ) -> None:
        self._fetch = fetch
        self._is_online = is_online
        self.timeout = timeout
        self.interval = interval
        self._on_change = on_change
        self.status = HealthStatus.CHECKING
        self.label = _LABELS[HealthStatus.CHECKING]
        self.visible = True
        self._inflight: asyncio.Task | None = None
        self._poller: asyncio.Task | None = None
        self._resume: asyncio.Task | None = None

    def _set(self, status: HealthStatus, label: str | None = None) -> None:
        self.status = status
        self.label = label or _LABELS[status]
        if self._on_change is not None:
            self._on_change(self.status, self.label)

    def _online(self) -> bool:
        try:
            return bool(self._is_online())
        except Exception:
            logger.exception("Connectivity check failed")
            return False

    async def _check_once(self) -> HealthStatus:
        self._set(HealthStatus.CHECKING)
        try:
            status_code, body = await asyncio.wait_for(self._fetch(), timeout=self.timeout)
        except Exception as e:
            online = self._online()
            logger.warning(
                "Health check failed (%s): %s",
                "online" if online else "offline",
                str(e) or type(e).__name__,
            )
            self._set(HealthStatus.ERROR if online else HealthStatus.OFFLINE)
            return self.status

        if not 200 <= status_code < 300:
            self._set(HealthStatus.ERROR)
        elif not (body or {}).get("ok"):
            self._set(HealthStatus.DEGRADED)
        else:
            self._set(HealthStatus.OK, ok_label(body))
        return self.status

    async def check(self) -> HealthStatus:
        previous = self._inflight
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(self._check_once())
        self._inflight = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.cancelled():
            # superseded by a newer check
            return self.status
        return task.result()

    async def _poll(self) -> None:
        await self.check()
        while True:
            await asyncio.sleep(self.interval)
            if self.visible:
                await self.check()

    def start(self) -> asyncio.Task:
        if self._poller is None or self._poller.done():
            self._poller = asyncio.ensure_future(self._poll())
        return self._poller

    def set_visible(self, visible: bool) -> None:
        resumed = visible and not self.visible
        self.visible = visible
        if resumed and self._poller is not None and not self._poller.done():
            self._resume = asyncio.ensure_future(self.check())

    async def stop(self) -> None:
        tasks = [t for t in (self._poller, self._resume, self._inflight) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._poller = None
        self._resume = None
        self._inflight = None
