"""FastAPI application."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import Database
from .domain_errors import DomainError
from .problem_details import build_problem_details_response, request_validation_to_domain_error
from .routers import (
    attachments,
    auth,
    backmarket,
    businesses,
    enquiries,
    notifications,
    sheets,
    shipstation,
    stats,
    users,
)
from .services import secretbox  # noqa: F401  (derives the sealing key; a missing key stops startup)

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _check_production_settings() -> None:
    if settings.ENV.lower() != "production":
        return
    if not settings.cors_origins:
        raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
    if any(origin.strip() == "*" for origin in settings.cors_origins):
        raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard when using credentials).")


async def _domain_error_handler(request: Request, exc: DomainError):
    return build_problem_details_response(exc)


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    return build_problem_details_response(request_validation_to_domain_error(exc))


async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the application around a database handle.

    The handle is opened on startup and closed on shutdown; tests pass their own.
    """
    _configure_logging()
    _check_production_settings()
    database = database or Database(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database.open()
        try:
            yield
        finally:
            database.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Backend API for multi-tenant returns management",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    app.state.database = database

    cors_headers = ["Authorization", "Content-Type"]
    if settings.ENV.lower() != "production":
        cors_headers = ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=cors_headers,
    )

    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    for module in (auth, users, businesses, sheets, enquiries, attachments, notifications, stats, backmarket, shipstation):
        app.include_router(module.router, prefix=API_PREFIX)

    @app.get(f"{API_PREFIX}/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok", "version": "1.0.0"}

    @app.get("/")
    def root():
        """Root endpoint."""
        return {
            "message": "RMA Returns Management API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return app


app = create_app()
