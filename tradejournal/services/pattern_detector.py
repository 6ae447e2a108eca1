"""Behavioral pattern detection over the tail of the trade history.

Runs synchronously after every close. Detection is advisory: the gateway
logs and discards any exception raised here.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import tzinfo

from tradejournal.models.learning_event import LearningEvent
from tradejournal.models.trade import Trade
from tradejournal.schemas.learning import PatternAnalysis, StrategyTally
from tradejournal.services.stats import strategy_profit_factor
from tradejournal.utils.constants import (
    ANALYSIS_WINDOW,
    CONSECUTIVE_LOSS_THRESHOLD,
    DEFAULT_STRATEGY,
    HIGH_RISK_PNL_PCT,
    LOW_CHECKLIST_GRADE,
    MIN_SAMPLE_TRADES,
    RECENT_TRADES_WINDOW,
    STRONG_PROFIT_FACTOR,
    TREND_PNL_THRESHOLD,
    WEAK_PROFIT_FACTOR,
    WEAK_WIN_RATE_PCT,
    Outcome,
    PatternType,
    TrendContext,
)
from tradejournal.utils.timeutils import local_hour, now_ms

logger = logging.getLogger(__name__)


@dataclass
class PatternReport:
    trade_id: str
    patterns: list[str] = field(default_factory=list)
    events: list[LearningEvent] = field(default_factory=list)
    consecutive_losses: int = 0
    trend: TrendContext = TrendContext.CHOPPY


def count_streak(trades: list[Trade], outcome: Outcome) -> int:
    """Length of the run of `outcome` at the head of a newest-first list."""
    count = 0
    for t in trades:
        if t.outcome != outcome.value:
            break
        count += 1
    return count


def infer_trend(trades: list[Trade]) -> TrendContext:
    """Trend from the pnl of the five newest closed trades."""
    if len(trades) < 3:
        return TrendContext.CHOPPY
    recent_pnl = sum(t.pnl for t in trades[:5])
    if recent_pnl > TREND_PNL_THRESHOLD:
        return TrendContext.UP
    if recent_pnl < -TREND_PNL_THRESHOLD:
        return TrendContext.DOWN
    return TrendContext.CHOPPY


def position_multiplier(trades: list[Trade]) -> float:
    """Suggested position-size multiplier after a losing or winning run."""
    losses = count_streak(trades, Outcome.LOSS)
    if losses >= 5:
        return 0.25
    if losses >= 3:
        return 0.5
    if losses >= 2:
        return 0.75

    wins = count_streak(trades, Outcome.WIN)
    if wins >= 5:
        return 1.25
    if wins >= 3:
        return 1.1
    return 1.0


class PatternDetector:
    def __init__(self, store, tz: tzinfo | None = None):
        self._store = store
        self._tz = tz

    def analyze(self, trade: Trade) -> PatternReport:
        recent = self._store.recent_closed(ANALYSIS_WINDOW)
        streak_window = recent[:RECENT_TRADES_WINDOW]
        trend = infer_trend(recent)
        report = PatternReport(trade_id=trade.id, trend=trend)
        now = now_ms()

        def emit(pattern: PatternType, lesson: str, trend_context: TrendContext | None = None,
                 market_context: str | None = None):
            report.patterns.append(pattern.value)
            report.events.append(LearningEvent(
                id=str(uuid.uuid4()),
                trade_id=trade.id,
                lesson=lesson,
                pattern_type=pattern.value,
                trend_context=trend_context.value if trend_context else None,
                market_context=market_context,
                timestamp=now,
            ))

        # Consecutive losses from the head of the recent list
        losses = count_streak(streak_window, Outcome.LOSS)
        report.consecutive_losses = losses
        if losses >= CONSECUTIVE_LOSS_THRESHOLD:
            emit(
                PatternType.CONSECUTIVE_LOSSES,
                f"Detected {losses} consecutive losses. Consider reducing position size.",
                trend_context=TrendContext.CHOPPY,
            )

        # Favourable hour on a win
        hour = local_hour(trade.timestamp, self._tz)
        if trade.outcome == Outcome.WIN.value:
            emit(
                PatternType.TIME_PERFORMANCE,
                f"Winning trade at {hour}:00. Consider this as a favorable trading hour.",
                market_context=f"Hour: {hour}",
            )

        # Strategy profit factor over the full history
        strategy = trade.strategy or DEFAULT_STRATEGY
        members = [t for t in self._store.closed_trades() if (t.strategy or DEFAULT_STRATEGY) == strategy]
        if members:
            win_pnls = [t.pnl for t in members if t.outcome == Outcome.WIN.value]
            loss_pnls = [t.pnl for t in members if t.outcome == Outcome.LOSS.value]
            pf = strategy_profit_factor(
                len(win_pnls),
                len(loss_pnls),
                sum(win_pnls) / len(win_pnls) if win_pnls else 0.0,
                sum(loss_pnls) / len(loss_pnls) if loss_pnls else 0.0,
            )
            if pf > STRONG_PROFIT_FACTOR:
                emit(
                    PatternType.STRATEGY_PERFORMANCE,
                    f"{strategy} strategy performing well (PF: {pf:.2f}). Prioritize this setup.",
                )
            elif pf < WEAK_PROFIT_FACTOR:
                emit(
                    PatternType.STRATEGY_PERFORMANCE,
                    f"{strategy} strategy underperforming (PF: {pf:.2f}). Review and adjust.",
                )

        if trade.outcome == Outcome.LOSS.value and (trade.checklist_grade or "").upper() == LOW_CHECKLIST_GRADE:
            emit(
                PatternType.LOW_GRADE_LOSS,
                "Low checklist grade correlated with loss. Complete every checklist item before trading.",
            )

        hour_trades = [
            t for t in recent
            if local_hour(t.timestamp, self._tz) == hour and t.outcome != Outcome.BREAKEVEN.value
        ]
        if len(hour_trades) >= MIN_SAMPLE_TRADES:
            win_rate = sum(1 for t in hour_trades if t.outcome == Outcome.WIN.value) / len(hour_trades) * 100
            if win_rate < WEAK_WIN_RATE_PCT:
                emit(
                    PatternType.WEAK_HOUR,
                    f"Hour {hour}:00 has {round(win_rate)}% win rate. Consider avoiding trades at this time.",
                    market_context=f"Hour: {hour}",
                )

        if abs(trade.pnl_percent or 0.0) > HIGH_RISK_PNL_PCT:
            emit(
                PatternType.HIGH_RISK,
                "Trade exceeded 10% position impact. Consider reducing leverage or position size.",
            )

        if report.patterns:
            logger.info(f"[patterns] {trade.id}: {', '.join(report.patterns)}")
        return report

    def pattern_analysis(self) -> PatternAnalysis:
        """Summary over the last `ANALYSIS_WINDOW` closed trades."""
        recent = self._store.recent_closed(ANALYSIS_WINDOW)

        hour_stats: dict[int, list[int]] = defaultdict(lambda: [0, 0])  # hour -> [wins, total]
        strategies: dict[str, StrategyTally] = {}
        for t in recent:
            if t.outcome == Outcome.BREAKEVEN.value:
                continue
            won = t.outcome == Outcome.WIN.value
            stats = hour_stats[local_hour(t.timestamp, self._tz)]
            stats[1] += 1
            if won:
                stats[0] += 1

            tally = strategies.setdefault(t.strategy or DEFAULT_STRATEGY, StrategyTally())
            tally.pnl += t.pnl
            if won:
                tally.wins += 1
            else:
                tally.losses += 1

        best, worst = [], []
        for hour in sorted(hour_stats):
            wins, total = hour_stats[hour]
            if total >= 3:
                rate = wins / total
                if rate >= 0.7:
                    best.append(hour)
                if rate <= 0.3:
                    worst.append(hour)

        losses = count_streak(recent[:RECENT_TRADES_WINDOW], Outcome.LOSS)
        recommendations = []
        if losses >= CONSECUTIVE_LOSS_THRESHOLD:
            recommendations.append("Take a break - consecutive losses detected")
        if worst:
            recommendations.append(f"Avoid trading at hours: {', '.join(map(str, worst))}")
        if best:
            recommendations.append(f"Focus on hours: {', '.join(map(str, best))}")
        for name, tally in strategies.items():
            total = tally.wins + tally.losses
            if total >= MIN_SAMPLE_TRADES:
                rate = tally.wins / total * 100
                if rate < WEAK_WIN_RATE_PCT:
                    recommendations.append(f"Review {name} strategy ({round(rate)}% win rate)")

        return PatternAnalysis(
            consecutive_losses=losses,
            consecutive_wins=count_streak(recent, Outcome.WIN),
            best_trading_hours=best,
            worst_trading_hours=worst,
            strategy_performance=strategies,
            recommendations=recommendations,
            position_multiplier=position_multiplier(recent),
            trend=infer_trend(recent).value,
        )
