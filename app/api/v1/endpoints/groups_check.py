from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.credentials import AuthTokenError
from app.core.dependencies import get_directory_client
from app.models.directory import GroupSummary
from app.services.directory_client import DirectoryClient, DirectoryError, GroupNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups-check", tags=["directory"])


@router.get("", response_model=GroupSummary)
async def groups_check(
    client: DirectoryClient = Depends(get_directory_client),  # noqa: B008
):
    try:
        return await client.group_summary()
    except GroupNotFoundError:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"ok": False, "error": "Group not found"},
        )
    except (AuthTokenError, DirectoryError, TimeoutError):
        logger.exception("Group diagnostics failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False},
        )
