"""Health check API endpoints.

Provides endpoints for monitoring server liveness and readiness.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from photoqueue_server import __version__
from photoqueue_server.api.uploads import get_upload_storage
from photoqueue_server.storage import UploadStorage

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> dict:
    """Liveness probe, also used by clients to detect connectivity."""
    return {"ok": True}


@router.get("/ready")
async def readiness_check(
    storage: UploadStorage = Depends(get_upload_storage),
) -> dict:
    """Check if the server can accept uploads.

    Returns 503 when the uploads directory is not writable.
    """
    if not storage.is_writable():
        logger.warning("readiness_storage_failed", path=str(storage.base_path))
        raise HTTPException(status_code=503, detail="Storage not writable")

    return {"ready": True, "version": __version__, "storage": storage.get_storage_stats()}
