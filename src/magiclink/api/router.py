"""Routers for the service's own endpoints.

Auth routes are mounted by ``register_magic_link`` at the plugin's base path.
"""

from fastapi import APIRouter

from magiclink.api import health

api_router = APIRouter()

api_router.include_router(health.router, prefix="/api/health", tags=["health"])
