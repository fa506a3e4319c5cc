"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from stacks.context import AppContext
from stacks.dependencies import get_context, get_db
from stacks.schemas import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context),
):
    """Return service health status.

    Checks connectivity to the database and, when caching is enabled, Redis.
    Overall status is "degraded" if any enabled service fails.
    """
    services = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        services["database"] = "ok"
    except Exception as e:
        services["database"] = f"error: {e.__class__.__name__}"

    if context.cache.enabled:
        redis_healthy = await context.cache.health_check()
        services["redis"] = "ok" if redis_healthy else "error: ping failed"
    else:
        services["redis"] = "disabled"

    overall_status = "ok" if all(s in ("ok", "disabled") for s in services.values()) else "degraded"
    return HealthCheckResponse(status=overall_status, services=services)
