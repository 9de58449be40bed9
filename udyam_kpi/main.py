import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from udyam_kpi.api.v1.api import api_router
from udyam_kpi.core.config import Settings
from udyam_kpi.core.context import AppContext
from udyam_kpi.db.init_db import init_db
from udyam_kpi.middleware.logging import LoggingMiddleware

logger = logging.getLogger(__name__)

app_config = {
    "title": "Udyam Mitra KPI Tracker",
    "description": "Role-based monthly KPI tracking for Udyam Mitra field agents",
    "version": "1.0.0",
    "docs_url": "/api/docs",
    "redoc_url": "/api/redoc",
    "openapi_url": "/api/openapi.json",
}


def format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg", "Invalid value"))
    return "Invalid request: " + "; ".join(messages)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    detail = format_validation_errors(exc)
    logger.warning(f"{request.method} {request.url.path} rejected: {detail}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the application.

    When no context is given one is created from settings on startup (Mongo
    client, Firebase Admin app, token verifier) and closed on shutdown.
    """
    if context is not None:
        settings = context.settings
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_context = getattr(app.state, "context", None) is None
        if owns_context:
            app.state.context = AppContext.from_settings(settings)
            await init_db(app.state.context.collections, seed=settings.SEED_MASTER_KPIS)
            logger.info("📊 Udyam Mitra KPI Tracker started")
        yield
        if owns_context:
            await app.state.context.close()
            app.state.context = None

    app = FastAPI(lifespan=lifespan, debug=settings.DEBUG, **app_config)
    if context is not None:
        app.state.context = context

    # Add middleware
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=settings.ALLOWED_METHODS,
        allow_headers=settings.ALLOWED_HEADERS,
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "message": "📊 Udyam Mitra KPI Tracker",
            "status": "active",
            "version": app_config["version"],
            "docs": app_config["docs_url"],
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "environment": settings.ENVIRONMENT}

    return app
