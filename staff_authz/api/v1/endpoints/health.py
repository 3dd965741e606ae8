"""
Health Check Endpoints
Service, database and team catalog status
"""

import time

from fastapi import APIRouter
import structlog

from staff_authz import __version__
from staff_authz.core.database import check_database_health
from staff_authz.core.team_catalog import get_team_catalog
from staff_authz.schemas.base import HealthCheck, HealthStatus

logger = structlog.get_logger()
router = APIRouter()


@router.get("/", response_model=HealthCheck)
async def health_check() -> HealthCheck:
    """
    Comprehensive health check endpoint

    Returns:
        Health status with database and catalog checks
    """
    checks = {}
    overall_status = HealthStatus.HEALTHY

    started = time.perf_counter()
    db_healthy = await check_database_health()
    checks["database"] = {
        "status": "healthy" if db_healthy else "unhealthy",
        "response_time_ms": round((time.perf_counter() - started) * 1000, 2),
    }
    if not db_healthy:
        overall_status = HealthStatus.UNHEALTHY

    try:
        catalog = get_team_catalog()
        checks["team_catalog"] = {
            "status": "healthy",
            "version": catalog.version,
            "team_count": len(catalog),
        }
    except Exception as e:
        logger.error("Team catalog unavailable", error=str(e))
        checks["team_catalog"] = {"status": "unhealthy", "error": str(e)}
        overall_status = HealthStatus.UNHEALTHY

    return HealthCheck(
        status=overall_status,
        service="staff-authz-api",
        version=__version__,
        checks=checks,
    )


@router.get("/live")
async def liveness_check():
    """Liveness probe"""
    return {"status": "alive"}
