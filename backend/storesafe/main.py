"""
Main Application Entry Point
============================

Responsibilities:
- Initialize FastAPI application
- Configure middleware stack
- Register API routers
- Set up exception handlers
- Provide health check endpoints

IMPORTANT:
    Database tables are managed via Alembic migrations.
    Do NOT use Base.metadata.create_all() outside tests.
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storesafe.core.config import settings
from storesafe.core.exceptions import StoreSafeException
from storesafe.core.logging import configure_logging, get_logger
from storesafe.db.session import SessionLocal, check_database_connection

# Import models for Alembic detection
from storesafe import models  # noqa: F401

from storesafe.routes import (
    action_routes,
    activity_routes,
    admin_routes,
    ai_routes,
    attachment_routes,
    auth_routes,
    fra_routes,
    incident_routes,
    investigation_routes,
    manager_routes,
    report_routes,
    route_planning_routes,
    store_routes,
)
from storesafe.middleware.request_middleware import (
    RateLimitMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)

configure_logging()
logger = get_logger(__name__)


# =====================================
# Application Lifespan Handler
# =====================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Application starting",
        extra={
            "app_name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "llm_configured": settings.llm_configured,
        }
    )

    if not check_database_connection():
        logger.error("Database connection failed on startup")
    else:
        logger.info("Database connection established")

    try:
        yield
    except asyncio.CancelledError:
        logger.debug("Application shutdown requested (CancelledError caught)")
        raise
    finally:
        logger.info("Application shutdown complete")


# =====================================
# FastAPI App Initialization
# =====================================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    StoreSafe - Retail Safety Compliance Back Office

    ## Features

    * **Incidents**: register, investigations and corrective actions with enforced lifecycles
    * **Stores**: audit results, audit-2 planning, FRA tracking and a 30-day compliance forecast
    * **Route Planning**: visit clustering, day schedules and iCalendar export
    * **Documents**: Fire Risk Assessments (DOCX/PDF), incident reports, CSV exports
    * **AI**: audit PDF import, FRA summaries and dashboard narratives

    ## Authentication

    Use the `/auth/login` endpoint to obtain access and refresh tokens.
    Include the access token in the `Authorization` header as `Bearer <token>`.

    ## Authorization

    Roles (in order of increasing permissions):
    * `pending`, `client`: no application access
    * `readonly`: view-only access
    * `ops`: day-to-day compliance operations
    * `admin`: user management and deletes
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)


# =====================================
# Middleware
# =====================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.cors_methods_list,
    allow_headers=settings.cors_headers_list,
    expose_headers=["Content-Disposition", "X-Request-ID"],
    max_age=3600,
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestContextMiddleware)


# =====================================
# Exception Handlers
# =====================================

@app.exception_handler(StoreSafeException)
async def storesafe_exception_handler(request: Request, exc: StoreSafeException):
    logger.warning(
        "StoreSafe exception",
        extra={
            "exception_type": type(exc).__name__,
            "message": exc.message,
            "status_code": exc.status_code,
            "path": request.url.path,
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation error",
        extra={"path": request.url.path, "errors": errors},
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "message": "Validation error",
            "details": {"errors": errors},
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Logs the error; the message is only echoed outside production.
    """
    logger.error(
        "Unhandled exception",
        extra={
            "exception_type": type(exc).__name__,
            "message": str(exc),
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )

    if settings.ENVIRONMENT == "production":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "An unexpected error occurred", "details": {}},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": str(exc), "details": {"type": type(exc).__name__}},
    )


# =====================================
# Register Routers
# =====================================

app.include_router(auth_routes.router)
app.include_router(admin_routes.router)
app.include_router(manager_routes.router)
app.include_router(store_routes.router)
app.include_router(incident_routes.router)
app.include_router(investigation_routes.router)
app.include_router(action_routes.router)
app.include_router(attachment_routes.router)
app.include_router(activity_routes.router)
app.include_router(route_planning_routes.router)
app.include_router(report_routes.router)
app.include_router(fra_routes.router)
app.include_router(ai_routes.router)


# =====================================
# Health Check Endpoints
# =====================================

@app.get("/", tags=["Health"], summary="Basic Health Check")
def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get(
    "/health",
    tags=["Health"],
    summary="Detailed Health Check",
    description="Returns detailed health status including database connectivity.",
)
def detailed_health_check():
    db_healthy = check_database_connection()

    return {
        "status": "healthy" if db_healthy else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {
            "database": "healthy" if db_healthy else "unhealthy",
            "llm": "configured" if settings.llm_configured else "not_configured",
        },
    }


@app.get("/ready", tags=["Health"], summary="Readiness Check")
def readiness_check():
    """
    Readiness check for container orchestration.

    Returns:
        200 if ready, 503 if not ready
    """
    if not check_database_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {"status": "ready"}


@app.get(
    "/db-check",
    tags=["Health"],
    summary="Database Connection Check",
    description="Opens a session and runs SELECT 1.",
)
def database_check():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return {"status": "Database Connected"}
    except SQLAlchemyError as e:
        logger.error("Database connection check failed", extra={"error": str(e)})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "Database Connection Failed",
                "error": str(e) if settings.DEBUG else "Unable to connect to database",
            },
        )
    finally:
        db.close()


# =====================================
# Application Info
# =====================================

@app.get(
    "/info",
    tags=["Info"],
    summary="Application Information",
    description="Returns application configuration information (non-sensitive).",
)
def application_info():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "features": {
            "rbac": True,
            "jwt_auth": True,
            "rate_limiting": settings.RATE_LIMIT_ENABLED,
            "llm": settings.llm_configured,
        },
        "token_settings": {
            "access_token_expire_minutes": settings.ACCESS_TOKEN_EXPIRE_MINUTES,
            "refresh_token_expire_days": settings.REFRESH_TOKEN_EXPIRE_DAYS,
        },
    }
