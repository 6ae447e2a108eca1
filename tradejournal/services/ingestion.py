"""IngestionGateway: the single writer in front of the stores.

Every mutation, from the HTTP API or a webhook, runs under one asyncio.Lock.
Inside the lock the store write, stats recompute, pattern detection and
hub publish are plain synchronous calls, so subscribers receive events in
mutation order and every broadcast reflects the write that caused it.
Insight generation is the only awaited work and runs after the lock is
released, in a tracked background task.
"""

import asyncio
import hmac
import logging
from typing import Any

from pydantic import BaseModel, ValidationError as PydanticValidationError

from tradejournal.errors import Unauthorized, ValidationError
from tradejournal.models.trade import Trade
from tradejournal.schemas.memory import AgentMemory, MemoryEnvelope
from tradejournal.schemas.signal import SignalCreate, SignalRead, SignalStatusUpdate
from tradejournal.schemas.trade import TradeClose, TradeCreate, TradeRead, TradeUpdate
from tradejournal.schemas.webhook import (
    WebhookSignalPayload,
    WebhookSignalUpdate,
    WebhookTrade,
    WebhookTradePayload,
)
from tradejournal.services.event_hub import EventType, Subscription
from tradejournal.services.pattern_detector import PatternReport, infer_trend
from tradejournal.services.pnl import resolve_close
from tradejournal.utils.constants import (
    ANALYSIS_WINDOW,
    DEFAULT_STRATEGY,
    INSIGHT_PNL_THRESHOLD,
    XP_PER_LOSS,
    XP_PER_WIN,
    Outcome,
    TradeSource,
)
from tradejournal.utils.timeutils import now_ms

logger = logging.getLogger(__name__)


def parse_payload(model: type[BaseModel], payload: Any):
    """Validate `payload` into `model`, mapping failures to ValidationError."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {model.__name__} payload", details=e.errors(include_url=False, include_context=False)) from e


def trade_wire(trade: Trade) -> dict:
    return TradeRead.model_validate(trade).to_wire()


def signal_wire(signal) -> dict:
    return SignalRead.model_validate(signal).to_wire()


class IngestionGateway:
    def __init__(
        self,
        trades,
        signals,
        learning,
        memory,
        hub,
        detector,
        stats,
        insight=None,
        webhook_secret: str = "",
        recent_trades: int = 10,
        recent_signals: int = 10,
    ):
        self.trades = trades
        self.signals = signals
        self.learning = learning
        self.memory = memory
        self.hub = hub
        self.detector = detector
        self.stats = stats
        self.insight = insight
        self.webhook_secret = webhook_secret
        self.recent_trades = recent_trades
        self.recent_signals = recent_signals
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    async def create_or_update_trade(self, payload, source: TradeSource = TradeSource.MANUAL) -> Trade:
        data = parse_payload(TradeCreate, payload)
        async with self._lock:
            trade, created = self.trades.upsert(data, source)
            if not created:
                self.hub.publish(EventType.TRADE_UPDATE, trade_wire(trade))
                return trade
            if trade.is_open:
                self.hub.publish(EventType.TRADE_OPEN, trade_wire(trade))
                return trade
            report = self._after_close(trade, first_close=True)
        self._maybe_schedule_insight(trade, report)
        return trade

    async def close_trade(self, trade_id: str, payload=None) -> Trade:
        data = parse_payload(TradeClose, payload or {})
        async with self._lock:
            existing = self.trades.require(trade_id)
            trade = self.trades.close(
                trade_id,
                exit_price=data.exit_price,
                outcome=data.outcome,
                pnl=data.pnl,
                pnl_percent=data.pnl_percent,
                notes=data.notes,
                checklist_grade=data.checklist_grade,
            )
            report = self._after_close(trade, first_close=existing.is_open)
        self._maybe_schedule_insight(trade, report)
        return trade

    async def update_trade_fields(self, trade_id: str, payload) -> Trade:
        data = parse_payload(TradeUpdate, payload)
        report = None
        async with self._lock:
            existing = self.trades.require(trade_id)
            trade = self.trades.update_fields(trade_id, data)
            if existing.is_open and not trade.is_open:
                report = self._after_close(trade, first_close=True)
            else:
                self.hub.publish(EventType.TRADE_UPDATE, trade_wire(trade))
                self.hub.publish(EventType.STATS_UPDATE, self.stats.stats().to_wire())
        if report is not None:
            self._maybe_schedule_insight(trade, report)
        return trade

    async def mark_floating(self, trade_id: str, pnl: float | None, pnl_percent: float | None = None) -> Trade:
        """Record an unrealized pnl mark on an open trade.

        Marks for a trade that has already closed are dropped.
        """
        async with self._lock:
            trade = self.trades.require(trade_id)
            if not trade.is_open:
                logger.info(f"[ingestion] Ignoring floating mark for closed trade {trade_id} ({trade.outcome})")
                return trade
            fields = {"pnl": pnl or 0.0}
            if pnl_percent is not None:
                fields["pnl_percent"] = pnl_percent
            trade = self.trades.update_fields(trade_id, TradeUpdate(**fields))
            self.hub.publish(EventType.TRADE_UPDATE, trade_wire(trade))
            self.hub.publish(EventType.STATS_UPDATE, self.stats.stats().to_wire())
        return trade

    def _after_close(self, trade: Trade, first_close: bool) -> PatternReport | None:
        """Broadcast a close and run its side effects. Caller holds the lock."""
        self.hub.publish(EventType.TRADE_CLOSE, trade_wire(trade))
        self.hub.publish(EventType.STATS_UPDATE, self.stats.stats().to_wire())

        try:
            report = self.detector.analyze(trade)
        except Exception:
            logger.exception(f"[ingestion] Pattern detection failed for {trade.id}")
            return None

        if report.events:
            try:
                self.learning.append(report.events)
            except Exception:
                logger.exception(f"[ingestion] Learning log write failed for {trade.id}")
            else:
                self.hub.publish(EventType.LEARNING_UPDATE, {
                    "tradeId": trade.id,
                    "patterns": report.patterns,
                    "timestamp": now_ms(),
                })

        # Experience only for the first close; re-closes do not farm XP
        if first_close and trade.outcome in (Outcome.WIN.value, Outcome.LOSS.value):
            try:
                self._record_experience(trade, report)
            except Exception:
                logger.exception(f"[ingestion] Memory update failed for {trade.id}")
        return report

    def _record_experience(self, trade: Trade, report: PatternReport):
        strategy = trade.strategy or DEFAULT_STRATEGY
        if trade.outcome == Outcome.WIN.value:
            sign = "+" if trade.pnl > 0 else ""
            detail = f"Patterns: {', '.join(report.patterns)}." if report.patterns else "Clean execution."
            lesson = f"Won {sign}{trade.pnl} on {trade.pair} {trade.direction} using {strategy}. {detail}"
            xp = XP_PER_WIN
        else:
            advice = " ".join(e.lesson for e in report.events[:2])
            lesson = f"Lost {trade.pnl} on {trade.pair} {trade.direction}. {advice}".strip()
            xp = XP_PER_LOSS

        self.memory.add_lesson(lesson, report.trend)
        memory, _ = self.memory.add_experience(xp)
        self.hub.publish(EventType.MEMORY_SYNC, memory.to_wire())

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def _maybe_schedule_insight(self, trade: Trade, report: PatternReport | None):
        if self.insight is None:
            return
        significant = abs(trade.pnl or 0.0) > INSIGHT_PNL_THRESHOLD
        if not significant and not (report and report.patterns):
            return
        trend = report.trend if report else infer_trend(self.trades.recent_closed(ANALYSIS_WINDOW))
        task = asyncio.create_task(self._generate_insight(trade.id, trend))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _generate_insight(self, trade_id: str, trend):
        try:
            lessons = self.memory.get().lessons
            text = await self.insight.generate(trend, lessons)
            async with self._lock:
                memory = self.memory.add_lesson(text, trend)
                self.hub.publish(EventType.MEMORY_SYNC, memory.to_wire())
            logger.info(f"[ingestion] Insight recorded for {trade_id}")
        except Exception:
            logger.exception(f"[ingestion] Insight generation failed for {trade_id}")

    async def wait_idle(self):
        """Wait for outstanding insight tasks."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    async def create_signal(self, payload):
        data = parse_payload(SignalCreate, payload)
        async with self._lock:
            signal, created = self.signals.create(data)
            event = EventType.SIGNAL_NEW if created else EventType.SIGNAL_UPDATE
            self.hub.publish(event, signal_wire(signal))
        return signal

    async def update_signal_status(self, signal_id: str, payload):
        data = parse_payload(SignalStatusUpdate, payload)
        async with self._lock:
            signal = self.signals.update_status(signal_id, data.status, data.pnl)
            self.hub.publish(EventType.SIGNAL_UPDATE, {
                "id": signal.id,
                "status": signal.status,
                "pnl": signal.pnl,
            })
        return signal

    # ------------------------------------------------------------------
    # Webhooks
    # ------------------------------------------------------------------

    def check_secret(self, raw: Any, header_secret: str | None = None):
        """Authenticate a webhook before its body is parsed.

        The secret travels in the body (`secret`) or the X-Webhook-Secret header.
        """
        provided = header_secret
        if provided is None and isinstance(raw, dict):
            provided = raw.get("secret")
        if not isinstance(provided, str):
            provided = None
        if not self.webhook_secret or not provided:
            raise Unauthorized("Invalid webhook secret")
        if not hmac.compare_digest(provided.encode(), self.webhook_secret.encode()):
            raise Unauthorized("Invalid webhook secret")

    async def handle_trade_webhook(self, raw: Any, header_secret: str | None = None) -> Trade:
        self.check_secret(raw, header_secret)
        payload = parse_payload(WebhookTradePayload, raw)
        body = payload.trade
        logger.info(f"[webhook] {payload.type} {body.id}")

        if payload.type == "TRADE_OPEN":
            data = self._webhook_trade_create(body, outcome=Outcome.OPEN)
            return await self.create_or_update_trade(data, TradeSource.WEBHOOK)

        if payload.type == "TRADE_CLOSE":
            if self.trades.get(body.id) is not None:
                close = TradeClose(
                    exit_price=body.exit_price,
                    outcome=body.outcome if body.outcome != Outcome.OPEN else None,
                    pnl=body.pnl,
                    pnl_percent=body.pnl_percent,
                )
                return await self.close_trade(body.id, close)
            return await self.create_or_update_trade(self._synthesize_closed(body), TradeSource.WEBHOOK)

        return await self.mark_floating(body.id, body.pnl, body.pnl_percent)

    def _webhook_trade_create(self, body: WebhookTrade, **overrides) -> TradeCreate:
        fields = body.model_dump(exclude_none=True)
        fields.update(overrides)
        return parse_payload(TradeCreate, fields)

    def _synthesize_closed(self, body: WebhookTrade) -> TradeCreate:
        """Build a fully closed record for a close of an id never seen open."""
        if body.pair is None or body.direction is None or body.entry_price is None:
            raise ValidationError(f"Unknown trade {body.id}: close needs pair, direction and entryPrice")
        resolved = resolve_close(
            body.direction,
            body.entry_price,
            body.leverage or 1,
            exit_price=body.exit_price,
            pnl=body.pnl,
            pnl_percent=body.pnl_percent,
            outcome=body.outcome,
        )
        return self._webhook_trade_create(
            body,
            exit_price=resolved.exit_price,
            pnl=resolved.pnl,
            pnl_percent=resolved.pnl_percent,
            outcome=resolved.outcome,
        )

    async def handle_signal_webhook(self, raw: Any, header_secret: str | None = None):
        self.check_secret(raw, header_secret)
        payload = parse_payload(WebhookSignalPayload, raw)
        logger.info(f"[webhook] {payload.type} {payload.signal.get('id')}")

        if payload.type == "SIGNAL_NEW":
            return await self.create_signal(payload.signal)

        update = parse_payload(WebhookSignalUpdate, payload.signal)
        return await self.update_signal_status(update.id, SignalStatusUpdate(status=update.status, pnl=update.pnl))

    # ------------------------------------------------------------------
    # Memory
    # ------------------------------------------------------------------

    async def sync_memory(self, incoming) -> MemoryEnvelope:
        memory = parse_payload(AgentMemory, incoming)
        async with self._lock:
            merged = self.memory.accept_sync(memory)
            self.hub.publish(EventType.MEMORY_SYNC, merged.to_wire())
        return MemoryEnvelope(memory=merged, last_synced=now_ms())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        return {
            "stats": self.stats.stats().to_wire(),
            "trades": [trade_wire(t) for t in self.trades.list_trades(self.recent_trades, 0)],
            "signals": [signal_wire(s) for s in self.signals.list_recent(self.recent_signals)],
        }

    def subscribe(self) -> Subscription:
        # No await between snapshot and registration: no publish can slip in
        return self.hub.subscribe(self.snapshot())
