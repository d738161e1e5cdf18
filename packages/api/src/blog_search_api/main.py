"""FastAPI application serving unified search.

Run with ``uvicorn blog_search_api.main:app`` or ``python -m blog_search_api.main``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from blog_search_common import (
    FatalSearchFailure,
    SearchValidationError,
    configure_logging_from_settings,
    get_logger,
    get_settings,
    init_telemetry,
)
from blog_search_storage import (
    DatabaseConfig,
    close_connection_pool,
    get_connection_pool,
)

from blog_search_api import service
from blog_search_api.metrics import instrument_request, track_request_status
from blog_search_api.request_id import REQUEST_ID_HEADER, RequestIDMiddleware

logger = get_logger(__name__)

UNAVAILABLE_MESSAGE = "Search is temporarily unavailable"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the pool and the search engine for the life of the process."""
    configure_logging_from_settings()
    init_telemetry(service_name="blog-search-api")

    pool = await get_connection_pool(DatabaseConfig.from_settings())
    app.state.pool = pool
    service.init_engine(pool, get_settings())
    logger.info("api_started", pool_size=pool.get_size())

    try:
        yield
    finally:
        await service.shutdown_engine()
        await close_connection_pool()
        logger.info("api_stopped")


async def handle_validation_error(
    request: Request, exc: SearchValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "reason": exc.reason,
            "message": exc.message,
        },
    )


async def handle_fatal_failure(
    request: Request, exc: FatalSearchFailure
) -> JSONResponse:
    """503 for clients; the underlying error only goes to the log."""
    logger.error(
        "search_unavailable",
        entity=exc.entity,
        operation=exc.operation,
        error=str(exc),
    )
    return JSONResponse(
        status_code=503,
        content={"error": "search_unavailable", "message": UNAVAILABLE_MESSAGE},
    )


def _install_middleware(app: FastAPI) -> None:
    # Read-only API: browsers may call it from anywhere, without credentials
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=[REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def record_request_metrics(request: Request, call_next):
        endpoint = request.url.path
        status = 500
        with instrument_request(endpoint, request.method):
            try:
                response = await call_next(request)
                status = response.status_code
                return response
            finally:
                track_request_status(endpoint, request.method, status)

    # Outermost, so metrics and error responses run with the id bound
    app.add_middleware(RequestIDMiddleware)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Blog Search API",
        description="Unified ranked search over articles, activities, users and tags",
        version="1.0.0",
        lifespan=lifespan,
    )

    _install_middleware(app)
    app.add_exception_handler(SearchValidationError, handle_validation_error)
    app.add_exception_handler(FatalSearchFailure, handle_fatal_failure)

    from blog_search_api.routes.health import router as health_router
    from blog_search_api.routes.search import router as search_router

    app.include_router(health_router, tags=["Health"])
    app.include_router(search_router, prefix="/search", tags=["Search"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("blog_search_api.main:app", host=settings.api_host, port=settings.api_port)
