from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.dependencies import get_directory_cache, get_reference_data, require_admin
from app.models.directory import ListsResponse, Manager
from app.services.directory_cache import DirectoryCache
from app.services.reference_data import ReferenceDataError, ReferenceDataService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lists", tags=["lists"], dependencies=[Depends(require_admin)])


@router.get("", response_model=ListsResponse)
async def get_lists(
    reference_data: ReferenceDataService = Depends(get_reference_data),  # noqa: B008
    directory_cache: DirectoryCache = Depends(get_directory_cache),  # noqa: B008
):
    try:
        departments, business_units = reference_data.load()
    except ReferenceDataError:
        logger.exception("Failed to load reference lists")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "Failed to load lists"},
        )

    managers: list[Manager] = []
    try:
        managers = await directory_cache.get_managers()
    except Exception as e:
        # directory outages must not block the rest of the form
        logger.warning("Manager list unavailable: %s", e)

    return ListsResponse(departments=departments, business_units=business_units, managers=managers)
