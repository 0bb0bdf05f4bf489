"""
FastAPI API package.

Contains routes and request dependencies.
"""

from rabbithole.api.routes import api_router

__all__ = ["api_router"]
