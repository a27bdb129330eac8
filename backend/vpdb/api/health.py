"""Health check endpoints"""
import time
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vpdb.config import settings
from vpdb.database import get_db
from vpdb.utils.logger import logger

router = APIRouter(prefix="/health", tags=["health"])

# Track startup time
STARTUP_TIME = time.time()


@router.get("")
def health_check():
    """
    Basic health check endpoint

    Returns 200 if service is running
    """
    return {
        "status": "healthy",
        "service": settings.API_NAME,
        "version": settings.API_VERSION,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/ready")
def readiness_check(request: Request, db: Session = Depends(get_db)) -> Any:
    """
    Readiness check - verifies all dependencies are available

    Checks:
    - Database connectivity and latency
    - Redis connectivity and latency

    Returns 200 if ready to serve traffic, 503 if not ready
    """
    checks: Dict[str, Any] = {
        "database": False,
        "database_latency_ms": None,
        "redis": False,
        "redis_latency_ms": None,
    }
    failures = []

    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        checks["database"] = True
        checks["database_latency_ms"] = round((time.time() - start) * 1000, 2)
    except SQLAlchemyError as e:
        failures.append(f"Database check failed: {e}")

    try:
        start = time.time()
        request.app.state.redis.ping()
        checks["redis"] = True
        checks["redis_latency_ms"] = round((time.time() - start) * 1000, 2)
    except RedisError as e:
        failures.append(f"Redis check failed: {e}")

    if failures:
        logger.warning("Readiness check failed", extra={"error": "; ".join(failures)})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "checks": checks, "message": "; ".join(failures)},
        )

    # More than 1 second
    if checks["database_latency_ms"] > 1000:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "degraded", "checks": checks, "message": "Database latency is high"},
        )

    return {
        "status": "ready",
        "checks": checks,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/live")
def liveness_check():
    """
    Liveness check - verifies service is alive

    Returns 200 if process is alive
    """
    return {
        "status": "alive",
        "uptime_seconds": round(time.time() - STARTUP_TIME, 2),
        "timestamp": datetime.utcnow().isoformat(),
    }
