"""Application factory for the Copy Studio FastAPI backend."""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .exceptions import CopyStudioError
from .logging_config import configure_logging
from .routers import catalog, generation, launches

logger = structlog.get_logger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"Invalid request: {location}: {message}" if location else f"Invalid request: {message}"


async def handle_copy_studio_error(request: Request, exc: CopyStudioError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("request_failed", path=request.url.path, status_code=exc.status_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _validation_message(exc)
    logger.warning("request_invalid", path=request.url.path, error=message)
    return JSONResponse(status_code=400, content={"error": message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.json_logs)

    app = FastAPI(
        title="Copy Studio Backend",
        version="0.1.0",
        description="Persona research, channel strategy and creative concept generation for product launches.",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_origin_regex=r"http://localhost:\d+$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.add_exception_handler(CopyStudioError, handle_copy_studio_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.include_router(generation.router)
    app.include_router(launches.router)
    app.include_router(catalog.router)

    logger.info(
        "app_configured",
        provider=settings.primary_provider,
        data_dir=str(settings.data_dir),
        brand=settings.brand_name,
    )
    return app


app = create_app()
