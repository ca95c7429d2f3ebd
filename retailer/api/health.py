from fastapi import APIRouter
from redis import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from retailer.database import engine
from retailer.utils.cache import cache_service

router = APIRouter(prefix="/health", tags=["Health"])


@router.get(
    "/",
    summary="Health check",
    description="Basic health check endpoint."
)
def health_check():
    """Simple health check."""
    return {"status": "healthy", "service": "retailer-api"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if the database and Redis are reachable."
)
def readiness_check():
    """
    Readiness check for all dependencies.

    The database is required; Redis only backs the cache, so its state is
    reported but does not make the service unready.
    """
    checks = {
        "database": False,
        "redis": False
    }

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            checks["database"] = True
    except SQLAlchemyError as e:
        checks["database_error"] = str(e)

    try:
        checks["redis"] = cache_service.ping()
    except RedisError as e:
        checks["redis_error"] = str(e)

    return {
        "status": "ready" if checks["database"] else "not_ready",
        "checks": checks
    }
