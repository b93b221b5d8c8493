# mileage_tracker/main.py
"""
Staff Mileage Tracker - Main API Entry Point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from . import __version__
from .config.logging import get_logger, setup_logging
from .config.settings import get_settings
from .core.database import check_database_health, cleanup_database, init_database
from .core.exceptions import BaseCustomException, custom_exception_handler
from .core.middleware import LoggingMiddleware, RequestIDMiddleware
from .api.v1.endpoints import analytics, gps, performance, staff, visits
from .utils.date_utils import DateUtils

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})...")
    init_database()

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")
    cleanup_database()


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures with the standard error body."""
    errors = [
        {
            "code": "INVALID_FIELD",
            "message": error.get("msg", "Invalid value"),
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body") or None,
        }
        for error in exc.errors()
    ]
    logger.info(f"{request.method} {request.url.path} rejected (422): {len(errors)} invalid field(s)")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": True,
            "error_code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "status_code": status.HTTP_422_UNPROCESSABLE_ENTITY,
            "errors": errors,
        },
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="GPS trip tracking, mileage reimbursement and staff performance analytics",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(LoggingMiddleware)
    # outermost, so the id is set before requests are logged
    app.add_middleware(RequestIDMiddleware)

    # Add exception handlers
    app.add_exception_handler(BaseCustomException, custom_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Include routers
    app.include_router(
        gps.router,
        prefix=f"{settings.API_PREFIX}/gps",
        tags=["GPS Tracking"]
    )
    app.include_router(
        visits.router,
        prefix=f"{settings.API_PREFIX}/visits",
        tags=["Visits"]
    )
    app.include_router(
        staff.router,
        prefix=f"{settings.API_PREFIX}/staff",
        tags=["Staff"]
    )
    app.include_router(
        performance.router,
        prefix=f"{settings.API_PREFIX}/staff-performance",
        tags=["Staff Performance"]
    )
    app.include_router(
        analytics.router,
        prefix=f"{settings.API_PREFIX}/analytics",
        tags=["Analytics"]
    )

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": f"{settings.APP_NAME} API",
            "version": __version__,
            "status": "operational"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        database_ok = check_database_health()
        return JSONResponse(
            status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "healthy" if database_ok else "unhealthy",
                "database": "connected" if database_ok else "unavailable",
                "timestamp": DateUtils.to_iso(DateUtils.get_utc_now()),
                "version": __version__
            }
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "mileage_tracker.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else 4
    )
