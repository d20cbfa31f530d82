"""Shared dependencies for API routes."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from importer.pipeline.service import ImportService


def get_import_service(request: Request) -> ImportService:
    """The ImportService started by the application lifespan."""
    service = getattr(request.app.state, "import_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Import service is not running",
        )
    return service
