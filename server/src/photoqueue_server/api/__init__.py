"""API endpoints for the PhotoQueue server."""

from photoqueue_server.api.health import router as health_router
from photoqueue_server.api.subscriptions import router as subscriptions_router
from photoqueue_server.api.uploads import router as uploads_router

__all__ = ["health_router", "subscriptions_router", "uploads_router"]
