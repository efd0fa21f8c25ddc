"""Microsoft Graph directory client: manager group resolution and membership."""

from __future__ import annotations

import asyncio
import logging
import unicodedata
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote, urlencode

import aiohttp

from app.core.credentials import GraphTokenProvider
from app.models.directory import GroupSampleUser, GroupSummary, Manager

logger = logging.getLogger(__name__)

MEMBER_SELECT = "id,displayName,jobTitle,department,userPrincipalName"
MEMBER_PAGE_SIZE = 999


class DirectoryError(Exception):
    pass


class GroupNotFoundError(DirectoryError):
    pass


class DirectoryQueryError(DirectoryError):
    def __init__(self, status: int, label: str) -> None:
        super().__init__(f"Graph {status} ({label})")
        self.status = status
        self.label = label


def escape_odata(value: str) -> str:
    return str(value).replace("'", "''")


def sort_key(name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def map_user(raw: dict[str, Any]) -> Manager:
    return Manager(
        id=raw["id"],
        name=raw.get("displayName") or raw.get("userPrincipalName") or "(no name)",
        upn=raw.get("userPrincipalName") or None,
        title=raw.get("jobTitle") or "Unknown",
        department=raw.get("department") or "Unknown",
    )


class DirectoryClient:
    def __init__(
        self,
        token_provider: GraphTokenProvider,
        *,
        group_id: str = "",
        group_name: str = "",
        base_url: str = "https://graph.microsoft.com/v1.0",
        timeout: float = 10.0,
    ) -> None:
        self.token_provider = token_provider
        self.group_id = group_id
        self.group_name = group_name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _request(self, url: str, label: str, *, as_text: bool = False) -> Any:
        token = await self.token_provider.get_token()
        headers = {"Authorization": f"Bearer {token}", "ConsistencyLevel": "eventual"}

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, headers=headers) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        logger.warning("Graph %s failed (%s): %s", label, response.status, error_text[:200])
                        raise DirectoryQueryError(response.status, label)
                    if as_text:
                        return await response.text()
                    return await response.json()
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"Graph {label} timed out after {self.timeout}s") from e

    def _groups_url(self, odata_filter: str) -> str:
        query = urlencode(
            {"$filter": odata_filter, "$select": "id,displayName", "$top": "1"},
            quote_via=quote,
            safe="$,",
        )
        return f"{self.base_url}/groups?{query}"

    async def resolve_group_id(self) -> str:
        if self.group_id:
            return self.group_id

        name = escape_odata(self.group_name)
        attempts = [
            ("nickname", f"mailNickname eq '{name}'"),
            ("display-name", f"displayName eq '{name}'"),
            ("display-prefix", f"startswith(displayName,'{name}')"),
        ]
        for label, odata_filter in attempts:
            body = await self._request(self._groups_url(odata_filter), f"group-{label}")
            values = body.get("value") or []
            if values and values[0].get("id"):
                logger.info("Resolved group %r via %s lookup", self.group_name, label)
                return values[0]["id"]

        raise GroupNotFoundError(f"Group not found: {self.group_name!r}")

    async def _member_pages(self, group_id: str) -> AsyncIterator[list[dict[str, Any]]]:
        query = urlencode({"$select": MEMBER_SELECT, "$top": MEMBER_PAGE_SIZE}, quote_via=quote, safe="$,")
        url: str | None = f"{self.base_url}/groups/{group_id}/transitiveMembers/microsoft.graph.user?{query}"
        while url:
            page = await self._request(url, "members-page")
            values = page.get("value")
            yield values if isinstance(values, list) else []
            url = page.get("@odata.nextLink")

    async def fetch_members(self, group_id: str) -> list[Manager]:
        managers: dict[str, Manager] = {}
        async for page in self._member_pages(group_id):
            for raw in page:
                if raw.get("id") and raw["id"] not in managers:
                    managers[raw["id"]] = map_user(raw)

        result = sorted(managers.values(), key=lambda m: sort_key(m.name))
        logger.info("Fetched %d managers from group %s", len(result), group_id)
        return result

    async def group_summary(self) -> GroupSummary:
        group_id = await self.resolve_group_id()
        base = f"{self.base_url}/groups/{group_id}"

        direct = await self._count(f"{base}/members/$count", "direct-count")
        transitive = await self._count(f"{base}/transitiveMembers/$count", "transitive-count")
        sample = await self._request(f"{base}/transitiveMembers/microsoft.graph.user?$top=5", "sample-users")

        return GroupSummary(
            group_id=group_id,
            direct_count=direct,
            transitive_count=transitive,
            sample_users=[
                GroupSampleUser(
                    id=u["id"],
                    name=u.get("displayName") or u.get("userPrincipalName"),
                    title=u.get("jobTitle"),
                    dept=u.get("department"),
                )
                for u in sample.get("value") or []
                if u.get("id")
            ],
        )

    async def _count(self, url: str, label: str) -> int | None:
        try:
            text = await self._request(url, label, as_text=True)
            return int(str(text).strip().lstrip("\ufeff"))
        except (DirectoryQueryError, ValueError):
            logger.warning("Graph %s unavailable", label)
            return None
