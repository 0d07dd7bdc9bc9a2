"""
Main API router for v1 endpoints
"""
from fastapi import APIRouter

from leadpulse.api.v1.endpoints import analytics, submissions

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(submissions.router, tags=["submissions"])
api_router.include_router(analytics.router, tags=["analytics"])
