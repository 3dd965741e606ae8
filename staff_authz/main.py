"""
FastAPI Main Application
Staff Authorization API Service
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from staff_authz import __version__
from staff_authz.core.config import settings
from staff_authz.core.database import close_database, init_database
from staff_authz.core.deps import get_audit_emitter, get_permission_resolver
from staff_authz.core.exceptions import StaffAuthzError
from staff_authz.core.logging import setup_logging
from staff_authz.core.team_catalog import get_team_catalog
from staff_authz.api.v1.router import api_router
from staff_authz.middleware.logging import LoggingMiddleware
from staff_authz.schemas.base import ErrorResponse
from staff_authz.services.bootstrap_admin import ensure_bootstrap_admin_exists

# Setup structured logging
setup_logging()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Staff Authorization API", version=__version__, environment=settings.ENVIRONMENT)

    try:
        catalog = get_team_catalog()
        logger.info("Team catalog loaded", catalog_version=catalog.version, team_count=len(catalog))

        await init_database()

        # Ensure bootstrap admin exists (idempotent)
        await ensure_bootstrap_admin_exists(get_permission_resolver())
    except Exception as e:
        logger.error("Startup failed", error=str(e), exc_info=True)
        raise

    yield

    logger.info("Shutting down Staff Authorization API")
    await get_audit_emitter().flush()
    await close_database()


app = FastAPI(
    title="Staff Authorization API",
    description="Team-based staff permission management",
    version=__version__,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "X-Request-ID",
        settings.ACTOR_ID_HEADER,
    ],
    expose_headers=["X-Request-ID"],
    max_age=600,
)

app.add_middleware(LoggingMiddleware)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Liveness endpoint for load balancers"""
    return {"status": "healthy", "service": "staff-authz-api", "version": __version__}


@app.exception_handler(StaffAuthzError)
async def staff_authz_exception_handler(request: Request, exc: StaffAuthzError):
    """Map engine errors to their status code and a stable error body"""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request rejected",
        path=request.url.path,
        method=request.method,
        code=exc.code,
        error=exc.message,
        **exc.context,
    )
    body = ErrorResponse(
        error=exc.message,
        code=exc.code,
        details=exc.context,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "code": "internal_error",
            "details": {},
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "staff_authz.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
