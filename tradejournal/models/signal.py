"""Signal model: watch-list entry with its own forward-only lifecycle."""

from sqlmodel import SQLModel, Field

from tradejournal.utils.timeutils import now_ms


class Signal(SQLModel, table=True):
    __tablename__ = "signal"

    id: str = Field(primary_key=True)
    pair: str
    direction: str  # "LONG" or "SHORT"
    entry_price: float
    stop_loss: float | None = None
    take_profit: float | None = None
    strategy: str = "Manual"
    confidence: str = "MEDIUM"  # "HIGH", "MEDIUM", "LOW"
    status: str = "WATCHING"  # "WATCHING", "TRIGGERED", "WON", "LOST", "EXPIRED"
    reasoning: str | None = None
    pnl: float | None = None
    timestamp: int = Field(default_factory=now_ms, index=True)
    updated_at: int = Field(default_factory=now_ms)
