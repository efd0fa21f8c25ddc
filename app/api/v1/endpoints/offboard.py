from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_queue_gateway, require_admin
from app.models.auth import ClientPrincipal
from app.models.submission import OffboardRequest, OffboardResponse
from app.services.envelopes import build_termination_envelope, utc_timestamp
from app.services.queue_gateway import QueueGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offboard", tags=["offboard"])


@router.post("", response_model=OffboardResponse)
async def offboard(
    request: OffboardRequest,
    principal: ClientPrincipal | None = Depends(require_admin),  # noqa: B008
    gateway: QueueGateway = Depends(get_queue_gateway),  # noqa: B008
):
    employee = request.employee.strip()
    if not employee:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "error": "Missing employee"},
        )

    if not gateway.configured:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "error": "Storage not configured"},
        )

    submitted_at = utc_timestamp()
    envelope = build_termination_envelope(
        employee,
        submitted_at,
        requested_by=principal.display if principal else None,
        manager_id=request.manager_id,
        manager_upn=request.manager_upn,
        manager_name=request.manager_name,
        notes=request.notes,
    )

    try:
        await gateway.ensure_queue()
        message_id = await gateway.send(envelope)
    except Exception:
        logger.exception("Termination request for %s failed to enqueue", employee)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "Queue submit failed"},
        )

    logger.info("Queued termination request %s", message_id)
    return OffboardResponse(submitted_at=submitted_at, message_id=message_id)
