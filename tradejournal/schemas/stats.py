"""Pydantic schemas for derived statistics."""

from tradejournal.schemas.base import CamelModel


class TradeStats(CamelModel):
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    breakeven: int = 0
    total_pnl: float = 0.0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    profit_factor: float = 0.0
    avg_risk_reward: float = 0.0


class StrategyStats(CamelModel):
    strategy: str
    trade_count: int
    win_count: int
    loss_count: int
    breakeven_count: int
    total_pnl: float
    avg_win_pnl: float
    avg_loss_pnl: float
    win_rate: float
    profit_factor: float
    weight: float
    last_updated: int


class DayStats(CamelModel):
    date: str  # YYYY-MM-DD, local calendar day
    trade_count: int
    total_pnl: float
    wins: int
    losses: int


class StatsResponse(CamelModel):
    stats: TradeStats
    strategy_weights: list[StrategyStats]


class StrategiesResponse(CamelModel):
    strategies: list[StrategyStats]


class CalendarResponse(CamelModel):
    calendar: list[DayStats]
