"""FastAPI application factory

Run with:
    uvicorn certlink.main:create_app --factory
or:
    python -m certlink
"""

import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from certlink.app_api.certificates.dependencies import CertificateServices, build_services
from certlink.app_api.certificates.routes import router as certificates_router
from certlink.app_api.health.routes import router as health_router
from certlink.shared.config import AppConfig, load_config
from certlink.shared.errors import (
    CertLinkError,
    ErrorCode,
    PersistenceValidationError,
    create_error_response,
    http_status_to_error_code,
)
from certlink.shared.logging_config import configure_logging

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def _diagnostic_detail(config: AppConfig, error: Optional[BaseException]) -> Optional[str]:
    """Full traceback for non-production callers, nothing in production."""
    if config.is_production or error is None:
        return None
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))


def register_exception_handlers(app: FastAPI, config: AppConfig) -> None:

    @app.exception_handler(CertLinkError)
    async def handle_certlink_error(request: Request, exc: CertLinkError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")

        metadata = None
        if isinstance(exc, PersistenceValidationError):
            metadata = {"fields": exc.field_errors}

        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(
                code=exc.code,
                message=exc.message,
                detail=_diagnostic_detail(config, exc.cause),
                metadata=metadata,
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = str(exc.detail)
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = "API endpoint not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(http_status_to_error_code(exc.status_code), message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        messages = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=create_error_response(ErrorCode.BAD_REQUEST, ", ".join(messages) or "Invalid request"),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=create_error_response(
                ErrorCode.INTERNAL_ERROR,
                "Internal server error",
                detail=_diagnostic_detail(config, exc),
            ),
        )


def create_app(
    config: Optional[AppConfig] = None,
    services: Optional[CertificateServices] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application configuration (loaded from the environment if omitted)
        services: Pre-built services (built from config if omitted)
    """
    config = config or (services.config if services else load_config())
    configure_logging(config.log_level)

    app = FastAPI(title="Certificate Management API")
    app.state.services = services or build_services(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.frontend_url],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_exception_handlers(app, config)

    app.include_router(health_router)
    app.include_router(certificates_router, prefix=API_PREFIX)

    logger.info(f"Certificate Management API configured (environment={config.environment})")
    return app
