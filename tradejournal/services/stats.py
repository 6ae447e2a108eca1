"""Statistics derived from closed trades.

Everything here is recomputed from the current TradeStore state on every
call, so re-closing a trade never double-counts.
"""

from collections import defaultdict
from datetime import tzinfo
from typing import Iterable

from tradejournal.models.trade import Trade
from tradejournal.schemas.stats import DayStats, StrategyStats, TradeStats
from tradejournal.utils.constants import (
    CLOSED_OUTCOMES,
    DEFAULT_STRATEGY,
    MAX_STRATEGY_WEIGHT,
    MIN_STRATEGY_WEIGHT,
    Outcome,
)
from tradejournal.utils.timeutils import local_date, now_ms

_CLOSED = {o.value for o in CLOSED_OUTCOMES}


def _closed(trades: Iterable[Trade]) -> list[Trade]:
    return [t for t in trades if t.outcome in _CLOSED]


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def strategy_profit_factor(wins: int, losses: int, avg_win: float, avg_loss: float) -> float:
    """Smoothed win/loss value ratio; the +1 keeps loss-free strategies finite."""
    win_value = wins * abs(avg_win)
    loss_value = losses * abs(avg_loss) + 1
    return win_value / loss_value


def strategy_weight(wins: int, losses: int, avg_win: float, avg_loss: float) -> float:
    raw = strategy_profit_factor(wins, losses, avg_win, avg_loss)
    return max(MIN_STRATEGY_WEIGHT, min(MAX_STRATEGY_WEIGHT, raw))


def compute_trade_stats(trades: Iterable[Trade]) -> TradeStats:
    closed = _closed(trades)
    total = len(closed)
    win_pnls = [t.pnl for t in closed if t.outcome == Outcome.WIN.value]
    loss_pnls = [t.pnl for t in closed if t.outcome == Outcome.LOSS.value]
    wins, losses = len(win_pnls), len(loss_pnls)
    breakeven = total - wins - losses

    avg_win = _mean(win_pnls)
    avg_loss = _mean(loss_pnls)
    loss_value = abs(avg_loss * losses)
    profit_factor = abs(avg_win * wins) / (loss_value or 1.0)
    avg_risk_reward = abs(avg_win / avg_loss) if avg_loss else 0.0

    return TradeStats(
        total_trades=total,
        wins=wins,
        losses=losses,
        breakeven=breakeven,
        total_pnl=sum(t.pnl for t in closed),
        win_rate=round(wins / total * 100, 1) if total else 0.0,
        avg_win=avg_win,
        avg_loss=avg_loss,
        profit_factor=round(profit_factor, 2),
        avg_risk_reward=round(avg_risk_reward, 2),
    )


def compute_strategy_stats(trades: Iterable[Trade]) -> list[StrategyStats]:
    groups: dict[str, list[Trade]] = defaultdict(list)
    for t in _closed(trades):
        groups[t.strategy or DEFAULT_STRATEGY].append(t)

    now = now_ms()
    result = []
    for strategy, members in groups.items():
        win_pnls = [t.pnl for t in members if t.outcome == Outcome.WIN.value]
        loss_pnls = [t.pnl for t in members if t.outcome == Outcome.LOSS.value]
        wins, losses = len(win_pnls), len(loss_pnls)
        avg_win, avg_loss = _mean(win_pnls), _mean(loss_pnls)
        count = len(members)

        result.append(StrategyStats(
            strategy=strategy,
            trade_count=count,
            win_count=wins,
            loss_count=losses,
            breakeven_count=count - wins - losses,
            total_pnl=sum(t.pnl for t in members),
            avg_win_pnl=avg_win,
            avg_loss_pnl=avg_loss,
            win_rate=round(wins / count * 100, 1) if count else 0.0,
            profit_factor=round(strategy_profit_factor(wins, losses, avg_win, avg_loss), 2),
            weight=round(strategy_weight(wins, losses, avg_win, avg_loss), 2),
            last_updated=now,
        ))

    result.sort(key=lambda s: s.weight, reverse=True)
    return result


def compute_calendar_stats(trades: Iterable[Trade], tz: tzinfo | None = None) -> list[DayStats]:
    """Per local calendar day of the trade timestamp, newest day first."""
    days: dict[str, dict] = {}
    for t in _closed(trades):
        key = local_date(t.timestamp, tz).isoformat()
        day = days.setdefault(key, {"trade_count": 0, "total_pnl": 0.0, "wins": 0, "losses": 0})
        day["trade_count"] += 1
        day["total_pnl"] += t.pnl
        if t.outcome == Outcome.WIN.value:
            day["wins"] += 1
        elif t.outcome == Outcome.LOSS.value:
            day["losses"] += 1

    return [DayStats(date=key, **values) for key, values in sorted(days.items(), reverse=True)]


class StatsAggregator:
    """Loads the current closed-trade snapshot and derives statistics from it."""

    def __init__(self, store, tz: tzinfo | None = None):
        self._store = store
        self._tz = tz

    def stats(self) -> TradeStats:
        return compute_trade_stats(self._store.closed_trades())

    def strategy_stats(self) -> list[StrategyStats]:
        return compute_strategy_stats(self._store.closed_trades())

    def strategy(self, name: str) -> StrategyStats | None:
        for s in self.strategy_stats():
            if s.strategy == name:
                return s
        return None

    def calendar(self) -> list[DayStats]:
        return compute_calendar_stats(self._store.closed_trades(), self._tz)
