"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from companydata_shared.config import settings
from companydata_shared.errors import ClientInputError, QueryExecutionError

from companydata_api import __version__
from companydata_api.middleware.logging import LoggingMiddleware
from companydata_api.responses import error_response
from companydata_api.routers.health import router as health_router
from companydata_api.routers.v1 import v1_router
from companydata_api.services.search_service import CompanySearch, StoreSearchRepository

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    owned = None
    if getattr(app.state, "search_repository", None) is None:
        owned = StoreSearchRepository(settings.database_path)
        app.state.search_repository = owned
    try:
        yield
    finally:
        if owned is not None:
            app.state.search_repository = None
            owned.close()


async def _client_input_error(request: Request, exc: ClientInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_response("invalid_bbox", str(exc)))


async def _query_execution_error(request: Request, exc: QueryExecutionError) -> JSONResponse:
    # Store details stay in the log
    logger.error("query_failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content=error_response("internal_error", "error querying company data"),
    )


def create_app(repository: CompanySearch | None = None) -> FastAPI:
    """
    Build the API.

    With *repository* given, requests are served from it and the lifespan
    leaves the store alone; otherwise the store at settings.database_path
    is opened read-only on startup and reopened whenever an import replaces it.
    """
    app = FastAPI(
        title="Company Data API",
        description="Companies House registrations located by postcode grid reference",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.search_repository = repository

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    # last added = first executed
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(ClientInputError, _client_input_error)
    app.add_exception_handler(QueryExecutionError, _query_execution_error)

    app.include_router(health_router)
    app.include_router(v1_router)

    logger.info("app_created", cors_origins=settings.cors_origins_list)
    return app


app = create_app()
