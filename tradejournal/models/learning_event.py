"""LearningEvent model: append-only lesson derived from trade patterns."""

from sqlmodel import SQLModel, Field

from tradejournal.utils.timeutils import now_ms


class LearningEvent(SQLModel, table=True):
    __tablename__ = "learning_event"

    id: str = Field(primary_key=True)
    trade_id: str | None = Field(default=None, foreign_key="trade.id", index=True)
    lesson: str
    pattern_type: str | None = None  # see PatternType
    trend_context: str | None = None  # "UP", "DOWN", "CHOPPY"
    market_context: str | None = None
    timestamp: int = Field(default_factory=now_ms, index=True)
