"""Route modules public API."""

from bucketsync.api.routes.health import router as health_router
from bucketsync.api.routes.sync_jobs import router as sync_jobs_router
from bucketsync.api.routes.transfers import router as transfers_router

__all__ = ["health_router", "sync_jobs_router", "transfers_router"]
