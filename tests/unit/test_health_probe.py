from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.client.health_probe import HealthProbe, ok_label
from app.models.health import HealthStatus

OK_BODY = {"ok": True, "queueName": "hr-entries", "approximateMessageCount": 3}


def _probe(fetch, **kwargs) -> HealthProbe:
    return HealthProbe(fetch, **kwargs)


class TestCheck:
    @pytest.mark.anyio
    async def test_ok_with_label(self):
        changes = []
        probe = _probe(AsyncMock(return_value=(200, OK_BODY)), on_change=lambda s, label: changes.append((s, label)))

        assert await probe.check() is HealthStatus.OK
        assert probe.label == "OK · hr-entries (~3)"
        assert changes == [(HealthStatus.CHECKING, "Checking…"), (HealthStatus.OK, "OK · hr-entries (~3)")]

    @pytest.mark.anyio
    async def test_2xx_without_ok_is_degraded(self):
        probe = _probe(AsyncMock(return_value=(200, {"ok": False, "reason": "queue-not-found"})))
        assert await probe.check() is HealthStatus.DEGRADED

    @pytest.mark.anyio
    async def test_2xx_without_body_is_degraded(self):
        probe = _probe(AsyncMock(return_value=(204, None)))
        assert await probe.check() is HealthStatus.DEGRADED

    @pytest.mark.anyio
    async def test_non_2xx_is_error(self):
        probe = _probe(AsyncMock(return_value=(503, {"ok": False})))
        assert await probe.check() is HealthStatus.ERROR

    @pytest.mark.anyio
    async def test_transport_failure_while_online_is_error(self):
        probe = _probe(AsyncMock(side_effect=ConnectionError("refused")), is_online=lambda: True)
        assert await probe.check() is HealthStatus.ERROR

    @pytest.mark.anyio
    async def test_transport_failure_while_offline_is_offline(self):
        probe = _probe(AsyncMock(side_effect=ConnectionError("refused")), is_online=lambda: False)
        assert await probe.check() is HealthStatus.OFFLINE

    @pytest.mark.anyio
    async def test_timeout_while_offline_is_offline(self):
        async def slow():
            await asyncio.sleep(10)

        probe = _probe(slow, is_online=lambda: False, timeout=0.01)
        assert await probe.check() is HealthStatus.OFFLINE

    @pytest.mark.anyio
    async def test_broken_connectivity_check_counts_as_offline(self):
        def explode() -> bool:
            raise RuntimeError("no network stack")

        probe = _probe(AsyncMock(side_effect=OSError("down")), is_online=explode)
        assert await probe.check() is HealthStatus.OFFLINE


@pytest.mark.anyio
async def test_new_check_cancels_the_previous_one():
    started = asyncio.Event()
    calls = 0
    cancelled = False

    async def fetch():
        nonlocal calls, cancelled
        calls += 1
        if calls == 1:
            started.set()
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled = True
                raise
        return 200, OK_BODY

    probe = _probe(fetch)
    first = asyncio.ensure_future(probe.check())
    await started.wait()

    second = await probe.check()
    first_result = await first

    assert cancelled is True
    assert second is HealthStatus.OK
    assert isinstance(first_result, HealthStatus)
    assert probe.status is HealthStatus.OK


@pytest.mark.anyio
async def test_polling_repeats_checks():
    fetch = AsyncMock(return_value=(200, OK_BODY))
    probe = _probe(fetch, interval=0.01)

    probe.start()
    await asyncio.sleep(0.05)
    await probe.stop()

    assert fetch.await_count >= 2


@pytest.mark.anyio
async def test_hidden_probe_skips_polls():
    fetch = AsyncMock(return_value=(200, OK_BODY))
    probe = _probe(fetch, interval=0.01)
    probe.set_visible(False)

    probe.start()
    await asyncio.sleep(0.05)
    await probe.stop()

    assert fetch.await_count == 1


@pytest.mark.anyio
async def test_becoming_visible_checks_immediately():
    fetch = AsyncMock(return_value=(200, OK_BODY))
    probe = _probe(fetch, interval=60)

    probe.start()
    await asyncio.sleep(0.01)
    probe.set_visible(False)
    probe.set_visible(True)
    await asyncio.sleep(0.01)
    await probe.stop()

    assert fetch.await_count == 2


def test_ok_label_variants():
    assert ok_label({"ok": True}) == "OK"
    assert ok_label({"ok": True, "queueName": "q"}) == "OK · q"
    assert ok_label({"ok": True, "queueName": "q", "approximateMessageCount": 0}) == "OK · q (~0)"
