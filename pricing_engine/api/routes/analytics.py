"""Analytics API routes."""

from fastapi import APIRouter, Query

from pricing_engine.schemas.analytics import RevenuePeriod, RevenueSummary
from pricing_engine.services.revenue_service import RevenueService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get(
    "/revenue",
    response_model=RevenueSummary,
    summary="Revenue summary",
    description="Net revenue for a period compared with the period before it. Canceled orders are excluded.",
)
async def get_revenue(
    period: RevenuePeriod = Query(default="today", description="Reporting period"),
) -> RevenueSummary:
    """Summarize net revenue for the requested period."""
    service = RevenueService()
    return await service.summarize(period)
