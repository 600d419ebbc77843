"""
Secretaria Online API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Database and Redis connections
- Background job registry
- Error envelope handlers and CORS middleware
- API routing and health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import api_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.errors import register_exception_handlers
from app.core.logging_config import configure_logging
from app.core.redis import close_redis, init_redis
from app.core.scheduler import JobRegistry
from app.modules.maintenance.jobs import register_maintenance_jobs

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup connects Redis and the database (failures are fatal only in
    production), registers background jobs and starts the registry.
    Shutdown stops the registry before closing connections.
    """
    configure_logging(settings.effective_log_level)
    logger.info(f"Starting Secretaria Online API in {settings.python_env} mode...")

    try:
        await init_redis()
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        logger.info("Database connected")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        if settings.is_production:
            raise

    registry = JobRegistry()
    register_maintenance_jobs(registry)
    registry.start()
    app.state.job_registry = registry

    yield

    logger.info("Shutting down Secretaria Online API...")
    registry.shutdown()
    await close_redis()
    await close_db()
    logger.info("Cleanup complete")


app = FastAPI(
    title="Secretaria Online API",
    description="Academic secretariat API: student requests, documents and background jobs",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to Secretaria Online API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    return {"status": "ready"}
