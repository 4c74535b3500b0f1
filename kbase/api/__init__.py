"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application.
"""

from fastapi import APIRouter

from kbase.api.routes import account, auth, content, lists, metadata, settings, tags

# Create main API router
api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(content.router)
api_router.include_router(lists.router)
api_router.include_router(tags.router)
api_router.include_router(settings.router)
api_router.include_router(account.router)
api_router.include_router(metadata.router)
