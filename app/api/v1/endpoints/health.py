from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.dependencies import admin_allowed, get_principal, get_queue_gateway
from app.models.auth import ClientPrincipal
from app.services.queue_gateway import QueueGateway

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def queue_health(
    principal: ClientPrincipal | None = Depends(get_principal),  # noqa: B008
    gateway: QueueGateway = Depends(get_queue_gateway),  # noqa: B008
):
    if not admin_allowed(principal, anonymous_ok=settings.ALLOW_ANON_HEALTH):
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"ok": False, "reason": "unauthorized"},
        )

    snapshot = await gateway.health()
    return JSONResponse(
        status_code=status.HTTP_200_OK if snapshot.ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=snapshot.to_wire(),
    )


@router.get("/ready")
async def readiness_probe():
    return {"ready": True}
