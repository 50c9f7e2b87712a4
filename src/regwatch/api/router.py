"""Top-level API router mounting all domain routers under /api/v1."""

from fastapi import APIRouter

from regwatch.api.routes import compliance

api_router = APIRouter()
api_router.include_router(compliance.router, prefix="/compliance", tags=["compliance"])
