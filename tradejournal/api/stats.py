"""Derived statistics API."""

from fastapi import APIRouter, Depends

from tradejournal.api.deps import get_stats
from tradejournal.schemas.stats import CalendarResponse, StatsResponse, StrategiesResponse
from tradejournal.services.stats import StatsAggregator

router = APIRouter(prefix="/api", tags=["stats"])


@router.get("/stats", response_model=StatsResponse)
def get_stats_summary(stats: StatsAggregator = Depends(get_stats)):
    return StatsResponse(stats=stats.stats(), strategy_weights=stats.strategy_stats())


@router.get("/strategies", response_model=StrategiesResponse)
def get_strategy_stats(stats: StatsAggregator = Depends(get_stats)):
    return StrategiesResponse(strategies=stats.strategy_stats())


@router.get("/calendar", response_model=CalendarResponse)
def get_calendar(stats: StatsAggregator = Depends(get_stats)):
    """Closed-trade totals per local calendar day, newest first."""
    return CalendarResponse(calendar=stats.calendar())
