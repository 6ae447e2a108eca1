"""In-process publish/subscribe hub behind the SSE stream.

Each subscriber owns a bounded queue. Publishing never awaits: a subscriber
whose queue is full is evicted, its stream drains what it already has and
ends, and the client reconnects to receive a fresh init snapshot.
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tradejournal.utils.timeutils import now_ms

logger = logging.getLogger(__name__)

_CLOSED = object()


class EventType(str, Enum):
    CONNECTED = "connected"
    INIT = "init"
    TRADE_OPEN = "trade_open"
    TRADE_CLOSE = "trade_close"
    TRADE_UPDATE = "trade_update"
    SIGNAL_NEW = "signal_new"
    SIGNAL_UPDATE = "signal_update"
    STATS_UPDATE = "stats_update"
    LEARNING_UPDATE = "learning_update"
    MEMORY_SYNC = "memory_sync"
    HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class HubEvent:
    seq: int
    type: EventType
    data: Any
    timestamp: int


def format_sse(event: HubEvent) -> str:
    """Render one event as an SSE frame; `id` carries the sequence number."""
    return f"id: {event.seq}\nevent: {event.type.value}\ndata: {json.dumps(event.data)}\n\n"


class Subscription:
    def __init__(self, queue_size: int):
        self.id = uuid.uuid4().hex
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: HubEvent) -> bool:
        """Enqueue without blocking. False when closed or the buffer is full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    def close(self):
        if self._closed:
            return
        self._closed = True
        # A full queue needs no wakeup: the reader drains it and sees `closed`
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass

    async def next(self, timeout: float | None = None) -> HubEvent | None:
        """Next queued event, or None once the subscription has ended.

        Raises asyncio.TimeoutError if nothing arrives within `timeout`.
        """
        if self._closed and self._queue.empty():
            return None
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED:
            return None
        return item

    def pending(self) -> int:
        return self._queue.qsize()


class EventHub:
    def __init__(self, queue_size: int = 256):
        if queue_size < 2:
            raise ValueError("queue_size must hold at least the connected and init events")
        self._queue_size = queue_size
        self._subscribers: dict[str, Subscription] = {}
        self._seq = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _make(self, event_type: EventType, data: Any) -> HubEvent:
        self._seq += 1
        return HubEvent(seq=self._seq, type=EventType(event_type), data=data, timestamp=now_ms())

    def subscribe(self, snapshot: dict) -> Subscription:
        """Register a subscriber whose queue starts with connected + init.

        Both are enqueued before registration, so no live event can
        precede the snapshot.
        """
        sub = Subscription(self._queue_size)
        sub.offer(self._make(EventType.CONNECTED, {"status": "connected", "timestamp": now_ms()}))
        sub.offer(self._make(EventType.INIT, snapshot))
        self._subscribers[sub.id] = sub
        logger.info(f"[event_hub] Subscriber {sub.id[:8]} connected ({self.subscriber_count} total)")
        return sub

    def unsubscribe(self, sub: Subscription):
        removed = self._subscribers.pop(sub.id, None)
        sub.close()
        if removed is not None:
            logger.info(f"[event_hub] Subscriber {sub.id[:8]} removed ({self.subscriber_count} total)")

    def publish(self, event_type: EventType, data: Any) -> HubEvent:
        event = self._make(event_type, data)
        for sub in list(self._subscribers.values()):
            if not sub.offer(event):
                logger.warning(f"[event_hub] Subscriber {sub.id[:8]} buffer full, evicting")
                self.unsubscribe(sub)
        return event

    async def heartbeat(self) -> int:
        """Liveness ping for every subscriber. Returns the subscriber count."""
        self.publish(EventType.HEARTBEAT, {"timestamp": now_ms()})
        return self.subscriber_count

    def close(self):
        for sub in list(self._subscribers.values()):
            self.unsubscribe(sub)
        logger.info("[event_hub] Closed")
