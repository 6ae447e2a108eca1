"""Tests for pattern detection and the pattern analysis summary."""

from types import SimpleNamespace

import pytest

from conftest import BASE_TS, HOUR_MS, UTC, make_trade
from tradejournal.services.pattern_detector import (
    PatternDetector,
    count_streak,
    infer_trend,
    position_multiplier,
)
from tradejournal.utils.constants import Outcome, TrendContext

_seq = iter(range(10_000))


@pytest.fixture
def detector(trade_store):
    return PatternDetector(trade_store, UTC)


def _close(store, exit_price: float, hour: int = 10, **overrides):
    """Insert and close a trade; later calls sort as more recent."""
    n = next(_seq)
    trade_id = overrides.pop("trade_id", f"t{n}")
    store.upsert(make_trade(trade_id, timestamp=BASE_TS + hour * HOUR_MS + n, **overrides))
    return store.close(trade_id, exit_price=exit_price)


def _fake(outcome: str, pnl: float = 0.0):
    return SimpleNamespace(outcome=outcome, pnl=pnl)


# ---------------------------------------------------------------------------
# 1. Pure helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_count_streak_stops_at_first_break(self):
        trades = [_fake("LOSS"), _fake("LOSS"), _fake("WIN"), _fake("LOSS")]
        assert count_streak(trades, Outcome.LOSS) == 2
        assert count_streak(trades, Outcome.WIN) == 0

    def test_infer_trend_needs_three_trades(self):
        assert infer_trend([_fake("WIN", 500.0), _fake("WIN", 500.0)]) == TrendContext.CHOPPY

    def test_infer_trend_up_and_down(self):
        assert infer_trend([_fake("WIN", 100.0)] * 3) == TrendContext.UP
        assert infer_trend([_fake("LOSS", -100.0)] * 3) == TrendContext.DOWN
        assert infer_trend([_fake("WIN", 50.0)] * 3) == TrendContext.CHOPPY

    @pytest.mark.parametrize("outcomes,expected", [
        (["LOSS"] * 5, 0.25),
        (["LOSS"] * 3, 0.5),
        (["LOSS", "LOSS", "WIN"], 0.75),
        (["WIN"] * 5, 1.25),
        (["WIN"] * 3, 1.1),
        (["WIN", "LOSS"], 1.0),
    ])
    def test_position_multiplier(self, outcomes, expected):
        assert position_multiplier([_fake(o) for o in outcomes]) == expected


# ---------------------------------------------------------------------------
# 2. Per-trade detection
# ---------------------------------------------------------------------------

class TestAnalyze:
    def test_third_consecutive_loss_fires(self, trade_store, detector):
        first = _close(trade_store, 95.0)
        assert "CONSECUTIVE_LOSSES" not in detector.analyze(first).patterns
        second = _close(trade_store, 95.0)
        assert "CONSECUTIVE_LOSSES" not in detector.analyze(second).patterns

        third = _close(trade_store, 95.0)
        report = detector.analyze(third)
        assert "CONSECUTIVE_LOSSES" in report.patterns
        assert report.consecutive_losses == 3
        event = next(e for e in report.events if e.pattern_type == "CONSECUTIVE_LOSSES")
        assert event.trade_id == third.id
        assert event.trend_context == "CHOPPY"
        assert event.lesson.startswith("Detected 3 consecutive losses")

    def test_win_resets_streak(self, trade_store, detector):
        for _ in range(3):
            _close(trade_store, 95.0)
        win = _close(trade_store, 105.0)
        assert detector.analyze(win).consecutive_losses == 0

        loss = _close(trade_store, 95.0)
        report = detector.analyze(loss)
        assert report.consecutive_losses == 1
        assert "CONSECUTIVE_LOSSES" not in report.patterns

    def test_winning_hour_recorded(self, trade_store, detector):
        win = _close(trade_store, 105.0, hour=14)
        report = detector.analyze(win)
        event = next(e for e in report.events if e.pattern_type == "TIME_PERFORMANCE")
        assert event.market_context == "Hour: 14"
        assert "14:00" in event.lesson

    def test_strong_strategy(self, trade_store, detector):
        win = _close(trade_store, 110.0, strategy="Breakout")
        report = detector.analyze(win)
        event = next(e for e in report.events if e.pattern_type == "STRATEGY_PERFORMANCE")
        assert "performing well" in event.lesson
        assert "PF: 10.00" in event.lesson

    def test_weak_strategy(self, trade_store, detector):
        loss = _close(trade_store, 90.0, strategy="Fade")
        report = detector.analyze(loss)
        event = next(e for e in report.events if e.pattern_type == "STRATEGY_PERFORMANCE")
        assert "underperforming" in event.lesson

    def test_low_grade_loss(self, trade_store, detector):
        loss = _close(trade_store, 99.0, checklist_grade="c")
        assert "LOW_GRADE_LOSS" in detector.analyze(loss).patterns

    def test_high_risk(self, trade_store, detector):
        win = _close(trade_store, 115.0)
        assert "HIGH_RISK" in detector.analyze(win).patterns

    def test_weak_hour(self, trade_store, detector):
        for _ in range(4):
            _close(trade_store, 99.0, hour=3)
        loss = _close(trade_store, 99.0, hour=3)
        report = detector.analyze(loss)
        event = next(e for e in report.events if e.pattern_type == "WEAK_HOUR")
        assert event.market_context == "Hour: 3"
        assert "0% win rate" in event.lesson


# ---------------------------------------------------------------------------
# 3. Summary analysis
# ---------------------------------------------------------------------------

def test_pattern_analysis_summary(trade_store, detector):
    for _ in range(3):
        _close(trade_store, 110.0, hour=9, strategy="Breakout")
    for _ in range(5):
        _close(trade_store, 95.0, hour=16, strategy="Fade")

    analysis = detector.pattern_analysis()
    assert analysis.consecutive_losses == 5
    assert analysis.consecutive_wins == 0
    assert analysis.best_trading_hours == [9]
    assert analysis.worst_trading_hours == [16]
    assert analysis.position_multiplier == 0.25
    assert analysis.strategy_performance["Breakout"].wins == 3
    assert analysis.strategy_performance["Fade"].losses == 5
    assert analysis.trend == "CHOPPY"
    assert "Take a break - consecutive losses detected" in analysis.recommendations
    assert "Review Fade strategy (0% win rate)" in analysis.recommendations
