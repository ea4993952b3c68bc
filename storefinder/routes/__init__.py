"""API routes."""

from fastapi import APIRouter

from storefinder.routes import api, pages

api_router = APIRouter()

# Render-targeted pages (view name + data for the rendering collaborator)
api_router.include_router(pages.router, tags=["pages"])

# Data-only JSON endpoints
api_router.include_router(api.router, prefix="/api/v1", tags=["api"])
