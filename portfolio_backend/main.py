from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_backend import __version__
from portfolio_backend.api.data import router as data_router
from portfolio_backend.api.health import router as health_router
from portfolio_backend.api.metrics import router as metrics_router
from portfolio_backend.api.projects import router as projects_router
from portfolio_backend.api.skills import router as skills_router
from portfolio_backend.api.storage import router as storage_router
from portfolio_backend.config import get_settings
from portfolio_backend.models.schemas import ErrorResponse
from portfolio_backend.observability.logging import configure_logging
from portfolio_backend.observability.middleware import RequestContextMiddleware
from portfolio_backend.services.app_log import get_app_log
from portfolio_backend.services.portfolio_store import get_store

logger = structlog.get_logger("portfolio_backend")


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    settings.data_path.mkdir(parents=True, exist_ok=True)
    settings.log_path.mkdir(parents=True, exist_ok=True)

    store = await get_store()
    app_log = get_app_log()
    logger.info(
        "startup",
        port=settings.port,
        environment=settings.environment,
        database=f"{settings.db_host}/{settings.db_name}",
        data_dir=str(settings.data_path),
        pod=settings.instance_id,
        store_state=store.state,
    )
    await app_log.append("info", "Server started", {"port": settings.port, "environment": settings.environment})

    yield

    logger.info("shutdown", pod=settings.instance_id)
    await app_log.append("info", "Server stopped")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


async def _http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _error(400, f"{location}: {message}" if location else message)


async def _unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", exc_info=exc)
    return _error(500, "Internal server error")


app = FastAPI(title="Portfolio Backend", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)
app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
app.add_exception_handler(RequestValidationError, _validation_exception_handler)
app.add_exception_handler(Exception, _unhandled_exception_handler)

app.include_router(health_router)
app.include_router(metrics_router)
app.include_router(projects_router)
app.include_router(skills_router)
app.include_router(data_router)
app.include_router(storage_router)
