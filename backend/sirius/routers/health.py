"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from sirius.config import settings
from sirius.database import engine
from sirius.wizards.registry import check_registry_consistency

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Lightweight health check (no DB check). 200 while the process is up."""
    return {
        "status": "ok",
        "service": "sirius",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check():
    """Database reachable and wizard registry consistent; 503 otherwise."""
    checks = {"service": "ok", "database": "unknown", "registry": "unknown"}
    overall_healthy = True

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {str(e)[:100]}"
        overall_healthy = False

    problems = check_registry_consistency()
    checks["registry"] = "ok" if not problems else f"error: {'; '.join(problems)[:100]}"
    overall_healthy = overall_healthy and not problems

    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if overall_healthy else "unhealthy",
            "service": "sirius",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
