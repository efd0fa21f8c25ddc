from fastapi import APIRouter

from app.api.v1.endpoints import groups_check, health, lists, offboard, submit

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router)
api_router.include_router(lists.router)
api_router.include_router(submit.router)
api_router.include_router(offboard.router)
api_router.include_router(groups_check.router)
