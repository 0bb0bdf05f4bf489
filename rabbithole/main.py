"""
FastAPI application entry point.

Main application with lifespan management for startup/shutdown.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rabbithole.api.routes import api_router
from rabbithole.core.config import config
from rabbithole.core.logging import setup_logging
from rabbithole.persistence.database import get_db_service

setup_logging(config)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup initialization and shutdown cleanup.
    """
    logger.info(f"Starting {config.app_name} v{APP_VERSION}")

    Path(config.database.base_dir).mkdir(parents=True, exist_ok=True)
    db = await get_db_service()
    logger.info(f"Database ready at {db.db_path}")

    if not config.search.api_key:
        logger.warning("TAVILY_API_KEY is not set; searches will fail")
    logger.info(
        f"Answering with {config.llm.model}, "
        f"search depth {config.search.search_depth}, {config.search.max_results} results per query"
    )

    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    title=config.app_name,
    description="Conversational topic exploration as a growing graph of questions and answers",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": config.app_name,
        "version": APP_VERSION,
    }


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": config.app_name,
        "version": APP_VERSION,
        "docs_url": "/docs",
        "openapi_url": "/openapi.json",
    }


def main():
    """Run the API server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "rabbithole.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )


if __name__ == "__main__":
    main()
