"""
Health Check Endpoints

- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable)
- /health/deep  - Detailed diagnostics including bKash and SMTP configuration
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from datetime import datetime
from typing import Dict, Any
import time

from app.core.config import settings
from app.core.logging_config import logger
from app.services.email_service import email_service


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Check database connectivity"""
    start = time.time()
    try:
        from app.core.database import get_session_local
        from sqlalchemy import text

        session_factory = get_session_local()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))

        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
        }
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "error": str(e),
        }


def check_email() -> Dict[str, Any]:
    return {
        "status": "degraded" if email_service.fallback_mode else "healthy",
        "configured": email_service.is_configured,
        "fallback_mode": email_service.fallback_mode,
        "min_interval_seconds": email_service.gate.min_interval,
    }


def check_bkash() -> Dict[str, Any]:
    return {
        "status": "healthy" if settings.is_bkash_configured() else "unconfigured",
        "base_url": settings.BKASH_BASE_URL,
    }


@router.get("/live")
async def liveness():
    return {"status": "alive", "timestamp": datetime.utcnow().isoformat()}


@router.get("/ready")
async def readiness():
    database = await check_database()
    ready = database["status"] == "healthy"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "database": database},
    )


@router.get("/deep")
async def deep_health():
    database = await check_database()
    return {
        "status": database["status"],
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "database": database,
            "email": check_email(),
            "bkash": check_bkash(),
        },
    }
