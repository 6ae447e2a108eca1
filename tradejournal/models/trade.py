"""Trade model: one position, open or closed, keyed by a client/server id."""

from sqlmodel import SQLModel, Field

from tradejournal.utils.timeutils import now_ms


class Trade(SQLModel, table=True):
    __tablename__ = "trade"

    id: str = Field(primary_key=True)
    pair: str = Field(index=True)  # e.g. "BTCUSDT"
    direction: str  # "LONG" or "SHORT"
    entry_price: float
    exit_price: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    leverage: int = 1
    pnl: float = 0.0
    pnl_percent: float = 0.0
    outcome: str = Field(default="OPEN", index=True)  # "OPEN", "WIN", "LOSS", "BREAKEVEN"
    strategy: str = Field(default="Manual", index=True)
    notes: str | None = None
    checklist_grade: str | None = None
    source: str = "manual"  # "manual" or "webhook"
    timestamp: int = Field(default_factory=now_ms, index=True)  # epoch ms
    closed_at: int | None = Field(default=None, index=True)  # set iff outcome != OPEN
    created_at: int = Field(default_factory=now_ms)

    @property
    def is_open(self) -> bool:
        return self.outcome == "OPEN"
