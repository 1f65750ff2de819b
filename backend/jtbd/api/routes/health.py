"""
Health check endpoints
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jtbd.core.config import get_settings
from jtbd.core.database import get_db
from jtbd.core.logging_config import LoggingConfig
from jtbd.models.mixins import utcnow

logger = LoggingConfig.get_logger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check with database status

    Returns 503 when the database cannot be reached.
    """
    settings = get_settings()
    health_status = {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "service": settings.app_name,
        "environment": settings.app_env,
        "access_policy": settings.access_policy.value,
        "components": {},
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["components"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful"
        }
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        health_status["status"] = "unhealthy"
        health_status["components"]["database"] = {
            "status": "unhealthy",
            "message": "Database connection failed",
            "error": type(e).__name__
        }
        return JSONResponse(status_code=503, content=health_status)

    return health_status
