"""FastAPI application factory for livecache.

Usage::

    from livecache.api.app import create_app

    app = create_app(registry=registry)

The factory is used by both the ``livecache serve`` command and tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from livecache.api.routes import router
from livecache.api.schemas import ErrorResponse
from livecache.sync.registry import SubscriptionNotFoundError, SubscriptionRegistry

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(registry: SubscriptionRegistry, config: Any = None) -> FastAPI:
    """Create and configure the livecache FastAPI application.

    Args:
        registry: SubscriptionRegistry whose managers are exposed.
        config:   Optional LiveCacheConfig, kept on app.state.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from livecache import __version__

    app = FastAPI(
        title="livecache",
        summary="Live query result cache",
        version=__version__,
        description="Read-only view of the result sequences published by livecache subscriptions.",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.registry = registry
    app.state.config = config

    app.include_router(router, prefix=_API_PREFIX)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(SubscriptionNotFoundError)
    async def not_found_handler(
        _request: Request,
        exc: SubscriptionNotFoundError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(
                error="SUBSCRIPTION_NOT_FOUND",
                detail=f"No subscription named {exc.args[0]!r}.",
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = exc.errors()
        first_msg = str(errors[0].get("msg", "")) if errors else ""
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_PARAMETER", detail=first_msg).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
