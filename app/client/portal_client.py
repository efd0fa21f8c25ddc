"""HTTP client for the portal API plus draft reconciliation after bulk submit."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from app.client.draft_store import DraftStore
from app.core.auth import PRINCIPAL_HEADER
from app.models.directory import ListsResponse
from app.models.submission import OffboardRequest, OffboardResponse, SubmitResult

logger = logging.getLogger(__name__)


class PortalClientError(Exception):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class PortalClient:
    def __init__(
        self,
        base_url: str,
        *,
        principal: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.principal = principal
        self.timeout = timeout

    @property
    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.principal:
            headers[PRINCIPAL_HEADER] = self.principal
        return headers

    def url(self, path: str) -> str:
        return f"{self.base_url}/api/v1/{path.lstrip('/')}"

    async def _call(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout: float | None = None,
    ) -> tuple[int, Any]:
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout)
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.request(method, self.url(path), headers=self.headers, json=json) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                return response.status, body

    async def fetch_lists(self) -> ListsResponse:
        """Load departments, business units and managers; failures yield empty lists."""
        try:
            status, body = await self._call("GET", "lists")
            if status != 200 or not isinstance(body, dict):
                raise PortalClientError("List fetch failed", status)
            return ListsResponse.model_validate(body)
        except (aiohttp.ClientError, asyncio.TimeoutError, PortalClientError, ValueError) as e:
            logger.warning("Falling back to empty lists: %s", e)
            return ListsResponse(ok=False)

    async def submit_all(self, entries: list[dict[str, Any]]) -> SubmitResult:
        status, body = await self._call("POST", "submit-all", json={"entries": entries})
        if status != 200 or not isinstance(body, dict):
            error = body.get("error") if isinstance(body, dict) else None
            raise PortalClientError(error or "Submit failed", status)
        return SubmitResult.model_validate(body)

    async def offboard(self, request: OffboardRequest) -> OffboardResponse:
        status, body = await self._call("POST", "offboard", json=request.to_wire())
        if status != 200 or not isinstance(body, dict) or not body.get("ok"):
            error = body.get("error") if isinstance(body, dict) else None
            raise PortalClientError(error or "Failed to queue termination request", status)
        return OffboardResponse.model_validate(body)

    async def health(self, timeout: float | None = None) -> tuple[int, dict[str, Any] | None]:
        status, body = await self._call("GET", "health", timeout=timeout)
        return status, body if isinstance(body, dict) else None


def reconcile_drafts(store: DraftStore, result: SubmitResult) -> int:
    """Drop exactly the accepted entries; failed ones stay for resubmission."""
    return store.remove(item.id for item in result.accepted)


def submission_summary(result: SubmitResult) -> str:
    accepted, failed = len(result.accepted), len(result.failed)
    if failed:
        return f"Submitted {accepted}, {failed} failed."
    return f"Submitted {accepted} and cleared."


async def submit_drafts(store: DraftStore, client: PortalClient) -> str:
    entries = store.entries()
    if not entries:
        return "Nothing to submit."

    try:
        result = await client.submit_all([e.model_dump(mode="json", by_alias=True) for e in entries])
    except (PortalClientError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.error("Bulk submit failed: %s", e)
        return "Submit failed."

    reconcile_drafts(store, result)
    return submission_summary(result)
