"""Pydantic schemas for learning events and pattern analysis."""

from tradejournal.schemas.base import CamelModel


class LearningEventRead(CamelModel):
    id: str
    trade_id: str | None
    lesson: str
    pattern_type: str | None
    trend_context: str | None
    market_context: str | None
    timestamp: int


class StrategyTally(CamelModel):
    wins: int = 0
    losses: int = 0
    pnl: float = 0.0


class PatternAnalysis(CamelModel):
    consecutive_losses: int
    consecutive_wins: int
    best_trading_hours: list[int]
    worst_trading_hours: list[int]
    strategy_performance: dict[str, StrategyTally]
    recommendations: list[str]
    position_multiplier: float
    trend: str


class LearningEventsResponse(CamelModel):
    events: list[LearningEventRead]
