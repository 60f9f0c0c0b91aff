# talenthunt/routes/health.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import psutil
import sys
import os
import logging

from talenthunt.config import settings
from talenthunt.database import get_db
from talenthunt.utils.dates import utcnow

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/health",
    tags=["Health Check"]
)

NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "X-Health-Check": "true"
}


@router.get("/")
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check with database connectivity and basic system figures
    """
    health_status = {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "service": "Edo Talent Hunt Backend API",
        "version": "1.0.0",
    }

    # 1. Database check
    try:
        db.execute(text("SELECT 1"))
        health_status["database"] = {
            "status": "connected",
            "type": db.get_bind().dialect.name
        }
    except SQLAlchemyError as e:
        health_status["database"] = {
            "status": "disconnected",
            "error": str(e)
        }
        health_status["status"] = "degraded"
        logger.error(f"Health check database failure: {e}")

    # 2. System resources
    health_status["system"] = {
        "python_version": sys.version,
        "platform": sys.platform,
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": psutil.virtual_memory().percent,
        "disk_percent": psutil.disk_usage('/').percent,
    }

    # 3. Application-specific checks
    cache = getattr(request.app.state, "location_cache", None)
    health_status["application"] = {
        "environment": os.getenv("ENVIRONMENT", "development"),
        "debug": settings.DEBUG,
        "location_cache": cache.info() if cache is not None else None,
        "payment_verify_with_gateway": settings.PAYMENT_VERIFY_WITH_GATEWAY,
    }

    logger.info(f"Health check completed: {health_status['status']}")
    return JSONResponse(content=health_status, headers=NO_CACHE)


@router.get("/ping")
def ping():
    """Minimal response for uptime monitors"""
    return JSONResponse(
        content={
            "status": "pong",
            "timestamp": utcnow().isoformat(),
            "service": "Edo Talent Hunt API"
        },
        headers={
            "Cache-Control": "no-cache",
            "X-Ping": "true"
        }
    )


@router.get("/process")
def process_info():
    process = psutil.Process()
    with process.oneshot():
        info = {
            "pid": process.pid,
            "name": process.name(),
            "status": process.status(),
            "num_threads": process.num_threads(),
            "memory_rss_mb": f"{process.memory_info().rss / (1024 * 1024):.2f}",
        }
    return {"status": "success", "data": info}
