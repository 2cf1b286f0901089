"""FastAPI application factory for the nodestats status API.

Usage::

    from nodestats.api.app import create_app

    app = create_app(collection_state=state, config=config)
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from nodestats.api.routes import router
from nodestats.api.schemas import ErrorResponse
from nodestats.models.state import CollectionState

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(collection_state: CollectionState, config: Any = None) -> FastAPI:
    """Create the status API.

    Args:
        collection_state: Shared state updated by the collection loop.
        config:           NodeStatsConfig, used for the cluster name.
    """
    from nodestats import __version__

    cluster_name = ""
    if config is not None and hasattr(config, "cluster_name"):
        cluster_name = config.cluster_name or ""

    app = FastAPI(
        title="nodestats",
        summary="Kubelet metrics collection status",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url=None,
        openapi_url="/api/v1/openapi.json",
    )

    app.state.collection_state = collection_state
    app.state.cluster_name = cluster_name

    app.include_router(router, prefix=_API_PREFIX)

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
