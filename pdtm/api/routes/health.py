"""Health check endpoint.

- /health - Service status, version and storage backend
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request

from pdtm.config import APP_VERSION
from pdtm.observability.telemetry import get_counter
from pdtm.runtime.policy import LEVEL_PRECEDENCE

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Health check endpoint. Does not touch storage."""
    service = getattr(request.app.state, "service", None)
    return {
        "status": "healthy" if service is not None else "starting",
        "service": "PDTM API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "storage": type(service.storage).__name__ if service is not None else None,
        "level_precedence": [level.value for level in LEVEL_PRECEDENCE],
        "counters": {
            "unknown_signals": get_counter("classifier.unknown_signal"),
            "failed_operations": get_counter("queue.operation_failed"),
        },
    }
