"""
API v1 Router
Main router for all API v1 endpoints
"""

from fastapi import APIRouter
from staff_authz.api.v1.endpoints import teams, health

api_router = APIRouter()

# Team management endpoints
api_router.include_router(
    teams.router,
    prefix="/teams",
    tags=["teams"]
)

# Health and monitoring endpoints
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"]
)
