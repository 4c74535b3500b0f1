"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from kbase.api import api_router
from kbase.core.config import settings
from kbase.core.errors import KBaseError, PayloadValidationError
from kbase.core.google_oauth import check_google_oauth_configured
from kbase.core.logging import get_logger, setup_logging
from kbase.db.session import (
    check_db_health,
    close_db,
    create_engine,
    create_session_factory,
    init_db,
)
from kbase.schemas.validation import errors_by_field

APP_VERSION = "0.1.0"

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan events.

    The engine and session factory live on ``app.state`` for the lifetime
    of the process; ``get_db`` opens one session per request from them.
    """
    logger.info(
        "starting_application",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        version=APP_VERSION,
    )

    engine = create_engine()
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    # Migrations own the schema everywhere else
    await init_db(engine, create_tables=settings.is_development or settings.is_sqlite)

    if not check_google_oauth_configured():
        logger.warning("google_oauth_not_configured", detail="GOOGLE_CLIENT_ID is not set; sign-in will fail")

    yield

    logger.info("shutting_down_application")
    await close_db(engine)


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Personal knowledge base - Backend API",
    version=APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check(request: Request) -> JSONResponse:
    """
    Health check endpoint for monitoring.
    Includes database connectivity check.
    """
    db_healthy = await check_db_health(request.app.state.engine)

    return JSONResponse(
        status_code=200 if db_healthy else 503,
        content={
            "status": "healthy" if db_healthy else "unhealthy",
            "app_name": settings.APP_NAME,
            "environment": settings.APP_ENV,
            "version": APP_VERSION,
            "database": "connected" if db_healthy else "disconnected",
        },
    )


@app.get("/", tags=["root"])
async def root() -> JSONResponse:
    return JSONResponse(
        content={
            "message": f"Welcome to {settings.APP_NAME} API",
            "version": APP_VERSION,
            "docs": "/docs" if settings.DEBUG else "Documentation disabled in production",
        }
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# ================================
# Exception Handlers
# ================================

@app.exception_handler(KBaseError)
async def kbase_error_handler(request: Request, exc: KBaseError) -> JSONResponse:
    """Domain errors raised by services."""
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            code=exc.code,
            error=str(exc),
            path=request.url.path,
            method=request.method,
            exc_info=exc.__cause__ is not None,
        )
    else:
        logger.info(
            "request_rejected",
            code=exc.code,
            status_code=exc.status_code,
            path=request.url.path,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query strings get the same shape as PayloadValidationError."""
    error = PayloadValidationError(errors_by_field(exc.errors()))
    return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled errors.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
            }
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kbase.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
