"""Health check endpoints for monitoring and deployment verification."""

import time

from fastapi import APIRouter, Response, status

from pricing_engine.api.middleware.latency_logging import get_latency_stats
from pricing_engine.core.supabase import check_database_connection
from pricing_engine.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse
from pricing_engine.services.schedule_cache import get_schedule_cache

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check() -> HealthResponse:
    """Return basic health status without touching dependencies."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Readiness check",
    description="Check that the catalog and order store is reachable. Used for readiness probes.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check readiness of the database and report cache statistics.

    Returns 503 if the database is unreachable.

    Args:
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Status of all dependency checks.
    """
    start_time = time.perf_counter()
    db_result = await check_database_connection()
    latency_ms = (time.perf_counter() - start_time) * 1000

    checks = [
        CheckResult(
            name="database",
            healthy=db_result["healthy"],
            latency_ms=round(latency_ms, 2),
            error=db_result.get("error"),
        )
    ]

    all_healthy = all(check.healthy for check in checks)
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status=HealthStatus.HEALTHY if all_healthy else HealthStatus.UNHEALTHY,
        checks=checks,
        schedule_cache=get_schedule_cache().get_stats(),
    )


@router.get(
    "/health/latency",
    summary="Request latency statistics",
    description="Aggregated request latencies recorded by the logging middleware.",
)
async def latency_stats() -> dict:
    """Return overall and per-endpoint latency statistics."""
    stats = get_latency_stats()
    return {"overall": stats.get_stats(), "by_path": stats.get_stats_by_path()}
