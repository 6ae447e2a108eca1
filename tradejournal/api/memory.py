"""Agent memory API: the shared replica."""

from fastapi import APIRouter, Depends

from tradejournal.api.deps import get_gateway, get_memory
from tradejournal.schemas.memory import MemoryEnvelope, MemorySyncRequest
from tradejournal.services.ingestion import IngestionGateway
from tradejournal.services.memory import MemoryReplica

router = APIRouter(prefix="/api/memory", tags=["memory"])


@router.get("", response_model=MemoryEnvelope)
def get_memory_state(memory: MemoryReplica = Depends(get_memory)):
    return memory.envelope()


@router.post("/sync", response_model=MemoryEnvelope)
async def sync_memory(data: MemorySyncRequest, gateway: IngestionGateway = Depends(get_gateway)):
    """Merge the caller's replica into the shared one and return the result."""
    return await gateway.sync_memory(data.memory)
