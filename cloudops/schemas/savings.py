"""Savings tracking schemas."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class SavingsTimeframe(str, Enum):
    """Window for savings roll-ups."""

    ALL = "all"
    MONTH = "month"
    WEEK = "week"


class TotalSavings(BaseModel):
    """Roll-up of verified savings over a timeframe."""

    success: bool = True
    timeframe: SavingsTimeframe = SavingsTimeframe.ALL
    total_actual_savings: float
    total_estimated_savings: float
    savings_count: int
    accuracy: float = Field(..., description="Actual as a percentage of estimated")


class SavingsTimelinePoint(BaseModel):
    """Savings implemented on one calendar date."""

    date: date
    estimated_savings: float = 0.0
    actual_savings: float = 0.0
    count: int = 0


class SavingsTimeline(BaseModel):
    success: bool = True
    days: int
    timeline: list[SavingsTimelinePoint]
