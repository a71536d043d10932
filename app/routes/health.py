"""
Health check endpoints.
"""
import time
import logging
import firebase_admin
from fastapi import APIRouter

from app.db import check_database_health
from app.core.settings import settings

logger = logging.getLogger("app.health")
router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.environment,
        "version": "1.0.0"
    }


@router.get("/health/detailed")
async def detailed_health_check():
    """Detailed health check with service status."""
    start_time = time.time()

    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.environment,
        "services": {}
    }

    db_health = await check_database_health()
    health_status["services"]["database"] = db_health
    if db_health["status"] != "healthy":
        health_status["status"] = "degraded"

    # Firebase is optional locally; mock tokens cover development and tests
    health_status["services"]["auth"] = {
        "status": "configured" if firebase_admin._apps else "not_configured",
        "provider": "firebase",
    }

    health_status["services"]["public_links"] = {
        "base_url": settings.app_url,
        "rate_limit_per_minute": settings.public_rate_limit_per_minute if settings.rate_limit_enabled else None,
    }

    response_time = (time.time() - start_time) * 1000
    health_status["response_time_ms"] = round(response_time, 2)
    return health_status


@router.get("/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    db_health = await check_database_health()
    if db_health["status"] != "healthy":
        logger.warning("Readiness check failed: database unavailable")
        return {"status": "not_ready", "reason": "database_unavailable"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"status": "alive", "timestamp": time.time()}
