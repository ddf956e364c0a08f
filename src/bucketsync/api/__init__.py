"""HTTP API package."""

from bucketsync.api.router import api_router

__all__ = ["api_router"]
