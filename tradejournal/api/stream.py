"""Server-sent event stream of journal changes."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from tradejournal.api.deps import get_gateway
from tradejournal.services.event_hub import format_sse
from tradejournal.services.ingestion import IngestionGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stream"])

# How often an idle stream checks whether the client went away
DISCONNECT_POLL_SECONDS = 5.0


@router.get("/stream")
async def stream_events(request: Request, gateway: IngestionGateway = Depends(get_gateway)):
    sub = gateway.subscribe()
    hub = gateway.hub

    async def generate():
        try:
            while True:
                try:
                    event = await sub.next(timeout=DISCONNECT_POLL_SECONDS)
                except asyncio.TimeoutError:
                    if await request.is_disconnected():
                        break
                    continue
                if event is None:
                    break
                yield format_sse(event)
        finally:
            hub.unsubscribe(sub)

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
