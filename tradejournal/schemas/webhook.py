"""Pydantic schemas for webhook pushes from the cloud bot.

The shared secret is checked on the raw body before these are parsed.
"""

from typing import Literal

from pydantic import Field

from tradejournal.schemas.base import CamelModel
from tradejournal.utils.constants import Direction, Outcome, SignalStatus


class WebhookTrade(CamelModel):
    id: str = Field(min_length=1, max_length=120)
    pair: str | None = Field(default=None, min_length=1, max_length=32)
    direction: Direction | None = None
    entry_price: float | None = Field(default=None, gt=0)
    exit_price: float | None = Field(default=None, gt=0)
    stop_loss: float | None = Field(default=None, gt=0)
    take_profit: float | None = Field(default=None, gt=0)
    leverage: int | None = Field(default=None, ge=1)
    pnl: float | None = None
    pnl_percent: float | None = None
    outcome: Outcome | None = None
    strategy: str | None = Field(default=None, max_length=120)
    timestamp: int | None = Field(default=None, ge=0)


class WebhookTradePayload(CamelModel):
    type: Literal["TRADE_OPEN", "TRADE_CLOSE", "TRADE_UPDATE"]
    trade: WebhookTrade


class WebhookSignalUpdate(CamelModel):
    id: str = Field(min_length=1)
    status: SignalStatus
    pnl: float | None = None


class WebhookSignalPayload(CamelModel):
    type: Literal["SIGNAL_NEW", "SIGNAL_UPDATE"]
    signal: dict


class WebhookAck(CamelModel):
    success: bool = True
    timestamp: int
