"""Savings tracking API routes."""

from fastapi import APIRouter, Depends, Path, Query

from cloudops.api.dependencies import get_savings_service
from cloudops.api.services.savings_service import SavingsService
from cloudops.schemas.savings import SavingsTimeframe, SavingsTimeline, TotalSavings

router = APIRouter(
    prefix="/api/v1/optimizer/{user_id}/savings",
    tags=["savings"],
)


@router.get("/total", response_model=TotalSavings)
async def get_total_savings(
    user_id: str = Path(..., min_length=1),
    timeframe: SavingsTimeframe = Query(default=SavingsTimeframe.ALL),
    service: SavingsService = Depends(get_savings_service),
):
    """Get verified savings over a timeframe (all, month, week)."""
    return service.get_total_savings(user_id, timeframe)


@router.get("/timeline", response_model=SavingsTimeline)
async def get_savings_timeline(
    user_id: str = Path(..., min_length=1),
    days: int = Query(default=30, ge=1, le=365),
    service: SavingsService = Depends(get_savings_service),
):
    """Get implemented savings per day over the last N days."""
    return service.get_savings_timeline(user_id, days)
