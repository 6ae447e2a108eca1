"""Pydantic schemas for Trade API."""

from pydantic import Field, field_validator, model_validator

from tradejournal.schemas.base import CamelModel
from tradejournal.utils.constants import Direction, Outcome


def _trim_required(value: str) -> str:
    text = value.strip()
    if not text:
        raise ValueError("must not be empty")
    return text


def _trim_optional(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


class TradeCreate(CamelModel):
    id: str | None = Field(default=None, min_length=1, max_length=120)
    pair: str = Field(min_length=1, max_length=32)
    direction: Direction
    entry_price: float = Field(gt=0)
    exit_price: float | None = Field(default=None, gt=0)
    stop_loss: float | None = Field(default=None, gt=0)
    take_profit: float | None = Field(default=None, gt=0)
    leverage: int = Field(default=1, ge=1)
    pnl: float | None = None
    pnl_percent: float | None = None
    outcome: Outcome | None = None
    strategy: str | None = Field(default=None, max_length=120)
    notes: str | None = None
    checklist_grade: str | None = Field(default=None, max_length=8)
    timestamp: int | None = Field(default=None, ge=0)  # epoch ms

    @field_validator("pair")
    @classmethod
    def _trim_pair(cls, value: str) -> str:
        return _trim_required(value).upper()

    @field_validator("id", "strategy", "notes", "checklist_grade")
    @classmethod
    def _trim_text(cls, value: str | None) -> str | None:
        return _trim_optional(value)

    @model_validator(mode="after")
    def _validate_outcome(self):
        if self.outcome is not None and self.outcome != Outcome.OPEN and self.exit_price is None and self.pnl is None:
            raise ValueError("a closed outcome needs exit_price or pnl")
        return self


class TradeClose(CamelModel):
    exit_price: float | None = Field(default=None, gt=0)
    outcome: Outcome | None = None
    pnl: float | None = None
    pnl_percent: float | None = None
    notes: str | None = None
    checklist_grade: str | None = Field(default=None, max_length=8)

    @field_validator("outcome")
    @classmethod
    def _terminal_outcome(cls, value: Outcome | None) -> Outcome | None:
        if value == Outcome.OPEN:
            raise ValueError("closing outcome must be WIN, LOSS or BREAKEVEN")
        return value

    @field_validator("notes", "checklist_grade")
    @classmethod
    def _trim_text(cls, value: str | None) -> str | None:
        return _trim_optional(value)


class TradeUpdate(CamelModel):
    exit_price: float | None = Field(default=None, gt=0)
    pnl: float | None = None
    pnl_percent: float | None = None
    outcome: Outcome | None = None
    notes: str | None = None
    checklist_grade: str | None = Field(default=None, max_length=8)

    @field_validator("notes", "checklist_grade")
    @classmethod
    def _trim_text(cls, value: str | None) -> str | None:
        return _trim_optional(value)


class TradeRead(CamelModel):
    id: str
    pair: str
    direction: str
    entry_price: float
    exit_price: float | None
    stop_loss: float | None
    take_profit: float | None
    leverage: int
    pnl: float
    pnl_percent: float
    outcome: str
    strategy: str
    notes: str | None
    checklist_grade: str | None
    source: str
    timestamp: int
    closed_at: int | None
