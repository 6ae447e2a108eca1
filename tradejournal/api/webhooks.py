"""Webhook receivers for the cloud trading bot.

Bodies are taken as raw JSON so the shared secret is checked before any
schema validation.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Header

from tradejournal.api.deps import get_gateway
from tradejournal.schemas.webhook import WebhookAck
from tradejournal.services.ingestion import IngestionGateway
from tradejournal.utils.timeutils import now_ms

router = APIRouter(prefix="/api/webhook", tags=["webhooks"])


@router.post("/trade", response_model=WebhookAck)
async def trade_webhook(
    payload: Any = Body(...),
    x_webhook_secret: str | None = Header(default=None),
    gateway: IngestionGateway = Depends(get_gateway),
):
    await gateway.handle_trade_webhook(payload, x_webhook_secret)
    return WebhookAck(timestamp=now_ms())


@router.post("/signal", response_model=WebhookAck)
async def signal_webhook(
    payload: Any = Body(...),
    x_webhook_secret: str | None = Header(default=None),
    gateway: IngestionGateway = Depends(get_gateway),
):
    await gateway.handle_signal_webhook(payload, x_webhook_secret)
    return WebhookAck(timestamp=now_ms())
