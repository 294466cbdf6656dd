"""API routes."""

from fastapi import APIRouter

from profile_score.routes import admin, analyze, ranking

api_router = APIRouter()

# Full scoring pipeline (rate limited)
api_router.include_router(analyze.router, prefix="/v1", tags=["analyze"])

# Read-only ranking lookups
api_router.include_router(ranking.router, prefix="/v1/ranking", tags=["ranking"])

# Admin endpoints (population management)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
