"""Top-level API router composition."""

from fastapi import APIRouter

from bucketsync.api.routes import health_router, sync_jobs_router, transfers_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(sync_jobs_router)
api_router.include_router(transfers_router)

__all__ = ["api_router"]
