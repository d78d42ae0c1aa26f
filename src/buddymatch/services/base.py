"""Common helpers for FastAPI-based services."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from structlog import get_logger

from buddymatch.config import get_settings
from buddymatch.errors import BuddyMatchError
from buddymatch.logging import configure_logging

logger = get_logger(__name__)

SERVICE_DESCRIPTION = {
    "matching": "Finds workout buddies and negotiates match requests.",
}


async def handle_domain_error(request: Request, exc: BuddyMatchError) -> JSONResponse:
    """Render engine errors as ``{"error": code, "detail": message}``."""

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_failed",
        path=request.url.path,
        method=request.method,
        error=exc.code,
        detail=str(exc),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": str(exc), "retryable": exc.retryable},
    )


def create_app(service_name: str, **fastapi_kwargs: Any) -> FastAPI:
    """Create a FastAPI app configured for the given service."""

    settings = get_settings()
    configure_logging(service=service_name)

    app = FastAPI(
        title=f"BuddyMatch {service_name.title()} Service",
        description=SERVICE_DESCRIPTION.get(service_name, ""),
        **fastapi_kwargs,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BuddyMatchError, handle_domain_error)

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        """Basic health endpoint."""

        return {"status": "ok", "service": service_name}

    return app
