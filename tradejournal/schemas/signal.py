"""Pydantic schemas for Signal API."""

from pydantic import Field, field_validator

from tradejournal.schemas.base import CamelModel
from tradejournal.utils.constants import Confidence, Direction, SignalStatus


class SignalCreate(CamelModel):
    id: str | None = Field(default=None, min_length=1, max_length=120)
    pair: str = Field(min_length=1, max_length=32)
    direction: Direction
    entry_price: float = Field(gt=0)
    stop_loss: float | None = Field(default=None, gt=0)
    take_profit: float | None = Field(default=None, gt=0)
    strategy: str | None = Field(default=None, max_length=120)
    confidence: Confidence = Confidence.MEDIUM
    status: SignalStatus = SignalStatus.WATCHING
    reasoning: str | None = None
    timestamp: int | None = Field(default=None, ge=0)

    @field_validator("pair")
    @classmethod
    def _trim_pair(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text.upper()


class SignalStatusUpdate(CamelModel):
    status: SignalStatus
    pnl: float | None = None


class SignalRead(CamelModel):
    id: str
    pair: str
    direction: str
    entry_price: float
    stop_loss: float | None
    take_profit: float | None
    strategy: str
    confidence: str
    status: str
    reasoning: str | None
    pnl: float | None
    timestamp: int
