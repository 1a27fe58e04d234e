"""Health check endpoints."""

from fastapi import APIRouter
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from tcof.config import get_settings
from tcof.db.session import DBSession
from tcof.models.catalog import SuccessFactor

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Basic health check."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(db: DBSession) -> dict[str, str | dict[str, str]]:
    """Readiness: the database answers. Catalog size is reported, not required."""
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
        factor_count = (await db.execute(select(func.count()).select_from(SuccessFactor))).scalar()
        checks["catalog"] = f"{factor_count} factors"
    except SQLAlchemyError as e:
        checks["database"] = f"unhealthy: {e.__class__.__name__}"

    return {
        "status": "healthy" if checks["database"] == "healthy" else "unhealthy",
        "version": settings.app_version,
        "checks": checks,
    }
