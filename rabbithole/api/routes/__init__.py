"""
API routes package.
"""

from fastapi import APIRouter

from rabbithole.api.routes import rabbitholes

# Create main router
api_router = APIRouter()

# Include sub-routers
api_router.include_router(rabbitholes.router, prefix="/rabbitholes", tags=["rabbitholes"])

__all__ = ["api_router"]
