from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from app.client.draft_store import DraftStore
from app.client.portal_client import (
    PortalClient,
    PortalClientError,
    reconcile_drafts,
    submission_summary,
    submit_drafts,
)
from app.models.drafts import DraftForm
from app.models.submission import AcceptedItem, FailedItem, OffboardRequest, SubmitResult

FORM = DraftForm(
    first_name="Grace",
    last_name="Hopper",
    title="Engineer",
    department="IT",
    business_unit="Navy",
    manager_id="m1",
)


@pytest.fixture
def store(tmp_path):
    return DraftStore(tmp_path)


def _result(accepted: list[str], failed: list[str] = ()) -> SubmitResult:
    return SubmitResult(
        ok=not failed,
        submitted_at="2024-01-05T09:30:00.000Z",
        accepted=[AcceptedItem(id=i, message_id=f"msg-{i}") for i in accepted],
        failed=[FailedItem(id=i) for i in failed],
    )


def test_reconcile_keeps_only_failed_entries(store):
    a = store.save(FORM)
    b = store.save(FORM)

    removed = reconcile_drafts(store, _result([a.id], [b.id]))

    assert removed == 1
    assert [e.id for e in store.entries()] == [b.id]

    reconcile_drafts(store, _result([b.id]))
    assert store.entries() == []


def test_submission_summary():
    assert submission_summary(_result(["a", "b"])) == "Submitted 2 and cleared."
    assert submission_summary(_result(["a"], ["b"])) == "Submitted 1, 1 failed."


@pytest.mark.anyio
async def test_submit_drafts_nothing_to_submit(store):
    client = MagicMock()
    client.submit_all = AsyncMock()

    assert await submit_drafts(store, client) == "Nothing to submit."
    client.submit_all.assert_not_called()


@pytest.mark.anyio
async def test_submit_drafts_reconciles(store):
    a = store.save(FORM)
    b = store.save(FORM)
    client = MagicMock()
    client.submit_all = AsyncMock(return_value=_result([a.id], [b.id]))

    assert await submit_drafts(store, client) == "Submitted 1, 1 failed."
    sent = client.submit_all.await_args.args[0]
    assert [e["id"] for e in sent] == [a.id, b.id]
    assert sent[0]["_meta"]["schema"] == 4
    assert [e.id for e in store.entries()] == [b.id]


@pytest.mark.anyio
async def test_submit_drafts_failure_keeps_everything(store):
    store.save(FORM)
    client = MagicMock()
    client.submit_all = AsyncMock(side_effect=PortalClientError("Storage not configured", 503))

    assert await submit_drafts(store, client) == "Submit failed."
    assert len(store.entries()) == 1


@pytest.mark.anyio
async def test_fetch_lists_falls_back_to_empty():
    client = PortalClient("http://portal.test")
    with patch.object(client, "_call", AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))):
        lists = await client.fetch_lists()

    assert lists.ok is False
    assert lists.departments == []
    assert lists.managers == []


@pytest.mark.anyio
async def test_fetch_lists_parses_payload():
    body = {
        "ok": True,
        "departments": ["IT"],
        "businessUnits": ["Navy"],
        "managers": [{"id": "m1", "name": "Ada", "upn": None, "title": "CTO", "department": "IT"}],
    }
    client = PortalClient("http://portal.test")
    with patch.object(client, "_call", AsyncMock(return_value=(200, body))):
        lists = await client.fetch_lists()

    assert lists.business_units == ["Navy"]
    assert lists.managers[0].name == "Ada"


@pytest.mark.anyio
async def test_submit_all_raises_backend_error():
    client = PortalClient("http://portal.test")
    with patch.object(client, "_call", AsyncMock(return_value=(503, {"ok": False, "error": "Storage not configured"}))):
        with pytest.raises(PortalClientError) as exc_info:
            await client.submit_all([{"id": "e1"}])

    assert exc_info.value.status == 503
    assert str(exc_info.value) == "Storage not configured"


@pytest.mark.anyio
async def test_offboard_posts_camel_case_body():
    client = PortalClient("http://portal.test")
    call = AsyncMock(return_value=(200, {"ok": True, "submittedAt": "t", "messageId": "msg-1"}))
    with patch.object(client, "_call", call):
        response = await client.offboard(OffboardRequest(employee="jdoe@contoso.com", manager_id="m1"))

    assert response.message_id == "msg-1"
    assert call.await_args.kwargs["json"]["managerId"] == "m1"


def test_headers_carry_principal():
    client = PortalClient("http://portal.test/", principal="abc")
    assert client.headers["x-ms-client-principal"] == "abc"
    assert client.url("/health") == "http://portal.test/api/v1/health"
    assert "x-ms-client-principal" not in PortalClient("http://portal.test").headers
