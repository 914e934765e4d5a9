"""
Health check endpoints with database pool monitoring.
"""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from peerpair.config import settings
from peerpair.db.pool import db_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "peerpair"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check against the database pool.
    """
    t0 = time.time()
    db_health = await db_health_check()
    is_healthy = db_health.get("healthy", False)

    database = {
        "ok": is_healthy,
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if "pool_stats" in db_health:
        database["pool_stats"] = db_health["pool_stats"]
    if not is_healthy:
        database["error"] = db_health.get("error", "Database unhealthy")

    body = {
        "overall_ok": is_healthy,
        "checks": {"database": database},
        "environment": settings.environment,
        "timestamp": time.time(),
    }
    return JSONResponse(status_code=200 if is_healthy else 503, content=body)
