"""API routes."""

from fastapi import APIRouter

from clover_sync.api.routes import clover

api_router = APIRouter()

api_router.include_router(clover.router, prefix="/clover", tags=["clover"])
