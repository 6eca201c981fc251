"""
CampusLink API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Database and Redis connections
- Background job scheduler (account lifecycle sweep)
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from campuslink import __version__
from campuslink.api import api_router
from campuslink.core.auth import CurrentUser, get_current_admin_user
from campuslink.core.config import settings
from campuslink.core.database import async_session_maker, close_db, init_db
from campuslink.core.redis import close_redis, init_redis, redis_status
from campuslink.core.scheduler import (
    list_registered_jobs,
    pause_job,
    resume_job,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)
from campuslink.modules.lifecycle import register_lifecycle_jobs

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Redis connection
    - Database connection
    - Background job scheduler
    """
    logger.info(f"Starting CampusLink API in {settings.python_env} mode...")

    # Redis is optional; rate limiting falls back to memory
    try:
        await init_redis()
        logger.info("[OK] Redis connected")
    except Exception as e:
        logger.error(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        logger.info("[OK] Database connected")
    except Exception as e:
        logger.error(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    try:
        # Register jobs before starting the scheduler
        register_lifecycle_jobs()

        await start_scheduler()
        logger.info("[OK] Background scheduler started")
    except Exception as e:
        logger.error(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield  # Application runs here

    logger.info("Shutting down CampusLink API...")

    # Stop the scheduler first (wait for running jobs)
    await stop_scheduler()
    logger.info("[OK] Background scheduler stopped")

    await close_redis()
    await close_db()
    logger.info("[OK] Cleanup complete")


app = FastAPI(
    title="CampusLink API",
    description="Identity verification and account lifecycle for the CampusLink network",
    version=__version__,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

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
        "message": "Welcome to CampusLink API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check: the database answers."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail={"status": "unavailable"}) from e
    return {"status": "ready"}


@app.get("/debug/redis", tags=["Debug"])
async def debug_redis(_admin: CurrentUser = Depends(get_current_admin_user)):
    """Test Redis connection and report which rate limit backend is in use."""
    return await redis_status()


# ============================================
# Background Job Endpoints
# ============================================
# Manual control of scheduled jobs. In normal operation jobs run on schedule.


@app.get("/debug/jobs", tags=["Debug"])
async def list_jobs(_admin: CurrentUser = Depends(get_current_admin_user)):
    """List all registered background jobs and their status."""
    return {"jobs": list_registered_jobs()}


@app.post("/debug/jobs/{job_id}/trigger", tags=["Debug"])
async def trigger_job(job_id: str, _admin: CurrentUser = Depends(get_current_admin_user)):
    """
    Run a registered job immediately, bypassing its schedule.

    Raises:
        HTTPException 400: If job_id is not registered
    """
    try:
        return await trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.post("/debug/jobs/{job_id}/pause", tags=["Debug"])
async def pause_job_endpoint(job_id: str, _admin: CurrentUser = Depends(get_current_admin_user)):
    """Pause a scheduled job. It stays registered."""
    return {"job_id": job_id, "paused": pause_job(job_id)}


@app.post("/debug/jobs/{job_id}/resume", tags=["Debug"])
async def resume_job_endpoint(job_id: str, _admin: CurrentUser = Depends(get_current_admin_user)):
    """Resume a paused job."""
    return {"job_id": job_id, "resumed": resume_job(job_id)}
