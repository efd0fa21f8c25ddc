from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request, status

from app.core.auth import is_admin, parse_client_principal
from app.core.config import settings
from app.models.auth import ClientPrincipal
from app.services.directory_cache import DirectoryCache
from app.services.directory_client import DirectoryClient
from app.services.queue_gateway import QueueGateway
from app.services.reference_data import ReferenceDataService
from app.services.submit_coordinator import BulkSubmitCoordinator


async def get_principal(
    x_ms_client_principal: str | None = Header(None),
) -> ClientPrincipal | None:
    return parse_client_principal(x_ms_client_principal)


def admin_allowed(principal: ClientPrincipal | None, *, anonymous_ok: bool = False) -> bool:
    return anonymous_ok or settings.local_bypass or is_admin(principal, settings.ADMIN_ROLE)


async def require_admin(
    principal: ClientPrincipal | None = Depends(get_principal),
) -> ClientPrincipal | None:
    if not admin_allowed(principal):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required: {settings.ADMIN_ROLE}",
        )
    return principal


def get_directory_client(request: Request) -> DirectoryClient:
    return request.app.state.directory_client


def get_directory_cache(request: Request) -> DirectoryCache:
    return request.app.state.directory_cache


def get_queue_gateway(request: Request) -> QueueGateway:
    return request.app.state.queue_gateway


def get_coordinator(request: Request) -> BulkSubmitCoordinator:
    return request.app.state.coordinator


def get_reference_data(request: Request) -> ReferenceDataService:
    return request.app.state.reference_data
