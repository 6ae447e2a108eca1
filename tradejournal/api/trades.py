"""Trade journal API."""

from datetime import date

from fastapi import APIRouter, Depends, Query

from tradejournal.api.deps import get_gateway, get_trade_store
from tradejournal.schemas.trade import TradeClose, TradeCreate, TradeRead, TradeUpdate
from tradejournal.services.ingestion import IngestionGateway
from tradejournal.services.trade_store import TradeStore

router = APIRouter(prefix="/api/trades", tags=["trades"])


@router.get("", response_model=list[TradeRead])
def list_trades(
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    day: date | None = Query(default=None, alias="date"),
    store: TradeStore = Depends(get_trade_store),
):
    if day is not None:
        return store.list_by_date(day)
    return store.list_trades(limit, offset)


@router.post("", response_model=TradeRead, status_code=201)
async def create_trade(data: TradeCreate, gateway: IngestionGateway = Depends(get_gateway)):
    return await gateway.create_or_update_trade(data)


@router.get("/open", response_model=list[TradeRead])
def list_open_trades(store: TradeStore = Depends(get_trade_store)):
    return store.list_open()


@router.get("/{trade_id}", response_model=TradeRead)
def get_trade(trade_id: str, store: TradeStore = Depends(get_trade_store)):
    return store.require(trade_id)


@router.patch("/{trade_id}", response_model=TradeRead)
async def update_trade(
    trade_id: str,
    data: TradeUpdate,
    gateway: IngestionGateway = Depends(get_gateway),
):
    return await gateway.update_trade_fields(trade_id, data)


@router.post("/{trade_id}/close", response_model=TradeRead)
async def close_trade(
    trade_id: str,
    data: TradeClose,
    gateway: IngestionGateway = Depends(get_gateway),
):
    return await gateway.close_trade(trade_id, data)
