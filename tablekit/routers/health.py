# tablekit/routers/health.py
# Liveness and readiness probes

import time
import asyncio
import logging
from typing import Any, Dict
from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text

from tablekit.db.base import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

DB_CHECK_TIMEOUT_SECONDS = 2.0


class HealthStatus(BaseModel):
    status: str  # "healthy" or "unhealthy"
    timestamp: float
    version: str = "1.0.0"
    checks: Dict[str, Dict[str, Any]] = {}


class ComponentHealth(BaseModel):
    status: str
    latency_ms: float = 0.0
    message: str = ""


async def _select_one() -> Any:
    async with get_session() as session:
        result = await session.execute(text("SELECT 1"))
        return result.scalar()


async def check_database_health() -> ComponentHealth:
    """Round-trip a SELECT 1 through the saved-view database."""
    start = time.time()
    try:
        value = await asyncio.wait_for(_select_one(), timeout=DB_CHECK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        return ComponentHealth(
            status="unhealthy",
            latency_ms=(time.time() - start) * 1000,
            message="Database connection timeout"
        )
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return ComponentHealth(
            status="unhealthy",
            latency_ms=(time.time() - start) * 1000,
            message=f"Database error: {type(e).__name__}"
        )

    latency_ms = (time.time() - start) * 1000
    if value != 1:
        return ComponentHealth(
            status="unhealthy",
            latency_ms=latency_ms,
            message="Database query returned unexpected result"
        )
    return ComponentHealth(status="healthy", latency_ms=latency_ms)


@router.get("/health", response_model=HealthStatus)
async def health_check(response: Response):
    db_health = await check_database_health()
    checks = {
        "database": {
            "status": db_health.status,
            "latency_ms": round(db_health.latency_ms, 2),
            "message": db_health.message,
        }
    }
    overall = "healthy" if db_health.status == "healthy" else "unhealthy"
    if overall != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthStatus(status=overall, timestamp=time.time(), checks=checks)


@router.get("/health/live")
async def liveness_probe():
    """Returns 200 while the process is up; no dependency checks."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe(response: Response):
    db_health = await check_database_health()
    if db_health.status == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not_ready", "reason": db_health.message}
    return {"status": "ready"}
