"""FastAPI server for PDTM activity monitoring"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pdtm.api.routes.domains import router as domains_router
from pdtm.api.routes.events import router as events_router
from pdtm.api.routes.health import router as health_router
from pdtm.config import API_HOST, API_PORT, APP_ENV, APP_VERSION, DB_PATH, STORAGE_BACKEND
from pdtm.infrastructure.env import ensure_env_loaded
from pdtm.observability.logging import get_logger
from pdtm.observability.telemetry import counter, log_event
from pdtm.service import ActivityMonitorService
from pdtm.storage.backend import StorageBackend
from pdtm.storage.memory import MemoryStorage
from pdtm.storage.session_store import InMemorySessionStore
from pdtm.storage.sqlite import SqliteStorage

# Load environment variables from .env file
ensure_env_loaded()

logger = get_logger(__name__)


def build_storage(backend: str | None = None) -> StorageBackend:
    """
    Storage backend named by PDTM_STORAGE ("memory" or "sqlite").

    Raises:
        ValueError: On an unknown backend name
    """
    name = (backend or os.getenv("PDTM_STORAGE", STORAGE_BACKEND)).lower()
    if name == "memory":
        return MemoryStorage()
    if name == "sqlite":
        return SqliteStorage(os.getenv("PDTM_DB_PATH", str(DB_PATH)))
    raise ValueError(f"Unknown storage backend: {name}")


def _allowed_origins() -> list[str]:
    origins: list[str] = []
    extension_id = os.getenv("PDTM_EXTENSION_ID", "")
    if extension_id:
        origins.append(f"chrome-extension://{extension_id}")

    # Allow localhost in development only
    if APP_ENV == "development":
        origins.extend(
            [
                "http://localhost:3000",
                "http://localhost:8000",
                "http://127.0.0.1:3000",
                "http://127.0.0.1:8000",
            ]
        )
    return origins


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Custom validation error handler that prevents leaking validation logic
    or echoing submitted URLs.

    Side Effects:
        - Logs the failing field locations (never the submitted values)
        - Increments the api.validation_errors counter
    """
    locations = [err["loc"] for err in exc.errors()]
    logger.warning("Validation error on %s: %s", request.url.path, locations)
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def create_app(
    service: ActivityMonitorService | None = None,
    storage: StorageBackend | None = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Prebuilt service (tests); otherwise one is built at startup
        storage: Storage for the service built at startup (default: PDTM_STORAGE)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = service is None
        active = service or ActivityMonitorService(
            storage=storage or build_storage(), sessions=InMemorySessionStore()
        )
        app.state.service = active
        log_event(
            "api.startup",
            service="pdtm",
            version=APP_VERSION,
            storage=type(active.storage).__name__,
        )
        try:
            yield
        finally:
            if owned:
                await active.close()
                if isinstance(active.storage, SqliteStorage):
                    active.storage.close()
            app.state.service = None

    app = FastAPI(title="PDTM API", version=APP_VERSION, lifespan=lifespan)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(),
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(events_router)
    app.include_router(domains_router)

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "service": "PDTM API",
            "version": APP_VERSION,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "navigation": "/api/events/navigation",
                "signal": "/api/events/signal",
                "tab_closed": "/api/events/tab-closed",
                "classify": "/api/classify",
                "cleanup": "/api/cleanup",
                "domains": "/api/domains",
            },
        }

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn (console script: pdtm-api)."""
    import uvicorn

    uvicorn.run(
        "pdtm.api.app:app",
        host=os.getenv("PDTM_API_HOST", API_HOST),
        port=int(os.getenv("PDTM_API_PORT", str(API_PORT))),
    )


if __name__ == "__main__":
    main()
