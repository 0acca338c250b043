"""
Course Sales Reports API

Main entry point: `uvicorn edureports.main:app`.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from edureports.config import get_settings
from edureports.config.logging import configure_logging
from edureports.database.connection import close_database, init_database
from edureports.serving.api import create_api_app

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    settings = get_settings()
    logger.info("Starting Course Sales Reports API", environment=settings.app_env, version=settings.version)

    # Report endpoints answer 503 until the database is reachable
    try:
        await init_database()
    except Exception as e:
        logger.warning("Database init failed", error=str(e))

    yield

    logger.info("Shutting down...")
    await close_database()


app = create_api_app(lifespan=lifespan)


@app.get("/api/info")
async def api_info():
    """API information endpoint."""
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": settings.version,
        "environment": settings.app_env,
        "documentation": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
