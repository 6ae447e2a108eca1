"""Signal watch-list API."""

from fastapi import APIRouter, Depends, Query

from tradejournal.api.deps import get_gateway, get_signal_store
from tradejournal.schemas.signal import SignalCreate, SignalRead, SignalStatusUpdate
from tradejournal.services.ingestion import IngestionGateway
from tradejournal.services.signal_store import SignalStore

router = APIRouter(prefix="/api/signals", tags=["signals"])


@router.get("", response_model=list[SignalRead])
def list_signals(
    limit: int = Query(default=20, ge=1, le=500),
    store: SignalStore = Depends(get_signal_store),
):
    return store.list_recent(limit)


@router.post("", response_model=SignalRead, status_code=201)
async def create_signal(data: SignalCreate, gateway: IngestionGateway = Depends(get_gateway)):
    return await gateway.create_signal(data)


@router.patch("/{signal_id}", response_model=SignalRead)
async def update_signal_status(
    signal_id: str,
    data: SignalStatusUpdate,
    gateway: IngestionGateway = Depends(get_gateway),
):
    return await gateway.update_signal_status(signal_id, data)
