"""Serves the application shell from a static directory.

Shell files are served as-is. The service worker and manifest are sent with
no-cache headers so clients always see the current shell version. Other
unknown paths outside the API fall back to index.html.
"""

from pathlib import Path

import structlog
from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

logger = structlog.get_logger(__name__)

NO_CACHE_FILES = frozenset({"sw.js", "manifest.webmanifest"})
NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def create_shell_router(static_dir: Path, api_prefix: str = "api/") -> APIRouter:
    """Build the catch-all router; include it after every API router."""
    root = Path(static_dir).resolve()
    router = APIRouter(tags=["shell"])

    @router.get("/{path:path}", include_in_schema=False)
    async def serve_shell(path: str) -> FileResponse:
        if path.startswith(api_prefix):
            raise HTTPException(status_code=404, detail="Not Found")

        candidate = (root / path).resolve()
        if path and candidate.is_relative_to(root) and candidate.is_file():
            headers = NO_CACHE_HEADERS if candidate.name in NO_CACHE_FILES else None
            return FileResponse(candidate, headers=headers)

        index = root / "index.html"
        if not index.is_file():
            raise HTTPException(status_code=404, detail="Not Found")
        return FileResponse(index)

    logger.info("shell_hosting_enabled", static_dir=str(root))
    return router
