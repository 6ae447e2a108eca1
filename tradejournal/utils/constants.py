"""Shared enums, thresholds and defaults."""

from enum import Enum


class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class Outcome(str, Enum):
    OPEN = "OPEN"
    WIN = "WIN"
    LOSS = "LOSS"
    BREAKEVEN = "BREAKEVEN"


CLOSED_OUTCOMES = (Outcome.WIN, Outcome.LOSS, Outcome.BREAKEVEN)


class TradeSource(str, Enum):
    MANUAL = "manual"
    WEBHOOK = "webhook"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class SignalStatus(str, Enum):
    WATCHING = "WATCHING"
    TRIGGERED = "TRIGGERED"
    WON = "WON"
    LOST = "LOST"
    EXPIRED = "EXPIRED"


# Forward-only ordering; terminal states share the top rank
SIGNAL_STATUS_RANK: dict[SignalStatus, int] = {
    SignalStatus.WATCHING: 0,
    SignalStatus.TRIGGERED: 1,
    SignalStatus.WON: 2,
    SignalStatus.LOST: 2,
    SignalStatus.EXPIRED: 2,
}


class TrendContext(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    CHOPPY = "CHOPPY"


class PatternType(str, Enum):
    CONSECUTIVE_LOSSES = "CONSECUTIVE_LOSSES"
    TIME_PERFORMANCE = "TIME_PERFORMANCE"
    STRATEGY_PERFORMANCE = "STRATEGY_PERFORMANCE"
    LOW_GRADE_LOSS = "LOW_GRADE_LOSS"
    WEAK_HOUR = "WEAK_HOUR"
    HIGH_RISK = "HIGH_RISK"


DEFAULT_STRATEGY = "Manual"

# Pattern detection
RECENT_TRADES_WINDOW = 10
ANALYSIS_WINDOW = 50
CONSECUTIVE_LOSS_THRESHOLD = 3
STRONG_PROFIT_FACTOR = 2.0
WEAK_PROFIT_FACTOR = 0.5
WEAK_WIN_RATE_PCT = 40.0
MIN_SAMPLE_TRADES = 5
HIGH_RISK_PNL_PCT = 10.0
LOW_CHECKLIST_GRADE = "C"
TREND_PNL_THRESHOLD = 200.0
INSIGHT_PNL_THRESHOLD = 100.0

# Strategy weight bounds
MIN_STRATEGY_WEIGHT = 0.1
MAX_STRATEGY_WEIGHT = 5.0

# Agent memory
MAX_LESSONS = 50
BASE_LEVEL_XP = 100
LEVEL_XP_GROWTH = 1.5
XP_PER_WIN = 20
XP_PER_LOSS = 10
MEMORY_ROW_ID = "main"
