"""Health check endpoints for monitoring system status."""
from datetime import datetime

from fastapi import APIRouter, HTTPException

from periodization.config.settings import get_settings
from periodization.db.database import check_database_health

router = APIRouter(prefix="/health", tags=["health"])
settings = get_settings()


@router.get("")
async def health_check():
    """Liveness: returns 200 while the process is up."""
    return {"status": "healthy", "app": settings.app_name}


@router.get("/readiness")
async def readiness_check():
    """
    Readiness probe endpoint.

    Returns 503 if the database cannot be reached.
    """
    if not await check_database_health():
        raise HTTPException(status_code=503, detail="Database not ready")
    return {"status": "ready", "timestamp": datetime.utcnow().isoformat()}
