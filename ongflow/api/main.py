"""FastAPI application entry point for OngFlow."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ongflow import __version__
from ongflow.api.dependencies import get_container, set_container
from ongflow.api.errors import domain_error_response, error_response
from ongflow.api.middleware import LoggingMiddleware
from ongflow.api.routes import (
    commitments_router,
    health_router,
    kpis_router,
    projects_router,
    tasks_router,
)
from ongflow.bootstrap.database import get_engine
from ongflow.bootstrap.logging import configure_logging
from ongflow.domain.exceptions import OngFlowError
from ongflow.infrastructure.adapters.persistence import create_schema

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    container = get_container()
    configure_logging(container.app_config.environment)
    if container.app_config.database_url:
        await create_schema(get_engine(container.app_config.database_url))
    logger.info("application_started", version=__version__)
    try:
        yield
    finally:
        await container.aclose()
        set_container(None)
        logger.info("application_stopped")


def _include_detail() -> bool:
    return get_container().app_config.is_development


async def _domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, OngFlowError)
    logger.warning(
        "request_rejected",
        path=request.url.path,
        kind=exc.kind,
        message=str(exc),
    )
    return domain_error_response(exc, include_detail=_include_detail())


async def _validation_error_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return error_response(
        "VALIDATION_ERROR",
        f"{location}: {message}" if location else message,
        include_detail=_include_detail(),
        exc=exc,
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_unhandled_error", path=request.url.path)
    return error_response(
        "INTERNAL_ERROR",
        "Internal server error",
        include_detail=_include_detail(),
        exc=exc,
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="OngFlow API",
        description="Collaborative project coordination between NGOs",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(LoggingMiddleware)
    app.add_exception_handler(OngFlowError, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(projects_router)
    app.include_router(tasks_router)
    app.include_router(commitments_router)
    app.include_router(kpis_router)
    return app


app = create_app()
