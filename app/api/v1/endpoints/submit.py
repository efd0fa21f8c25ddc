from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_coordinator, require_admin
from app.models.submission import SubmitAllRequest, SubmitResult
from app.services.submit_coordinator import BulkSubmitCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submit-all", tags=["submit"], dependencies=[Depends(require_admin)])


@router.post("", response_model=SubmitResult)
async def submit_all(
    request: SubmitAllRequest,
    coordinator: BulkSubmitCoordinator = Depends(get_coordinator),  # noqa: B008
):
    if not request.entries:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "error": "No entries"},
        )

    if not coordinator.gateway.configured:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "error": "Storage not configured"},
        )

    try:
        result = await coordinator.submit(request.entries)
    except Exception:
        logger.exception("Bulk submit failed before enqueueing entries")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "Submit failed"},
        )

    logger.info(
        "Submit-all: %d entries, %d accepted, %d failed",
        len(request.entries),
        len(result.accepted),
        len(result.failed),
    )
    return result
