"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from pdtm.service import ActivityMonitorService


def get_service(request: Request) -> ActivityMonitorService:
    """The service built by the app lifespan (503 if startup has not run)."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return service
