"""Tests for the in-process event hub."""

import asyncio
import json

import pytest

from tradejournal.services.event_hub import EventHub, EventType, HubEvent, format_sse


async def _drain(sub) -> list[HubEvent]:
    events = []
    while True:
        try:
            event = await sub.next(timeout=0.05)
        except asyncio.TimeoutError:
            return events
        if event is None:
            return events
        events.append(event)


@pytest.mark.asyncio
async def test_subscriber_receives_connected_then_init_first():
    hub = EventHub()
    hub.publish(EventType.TRADE_OPEN, {"id": "before"})

    sub = hub.subscribe({"stats": {}, "trades": [], "signals": []})
    hub.publish(EventType.TRADE_OPEN, {"id": "after"})

    events = await _drain(sub)
    assert [e.type for e in events] == [EventType.CONNECTED, EventType.INIT, EventType.TRADE_OPEN]
    assert events[1].data["trades"] == []
    assert events[2].data == {"id": "after"}


@pytest.mark.asyncio
async def test_events_arrive_in_publish_order_with_increasing_seq():
    hub = EventHub()
    sub = hub.subscribe({})
    for i in range(5):
        hub.publish(EventType.TRADE_UPDATE, {"n": i})

    events = (await _drain(sub))[2:]
    assert [e.data["n"] for e in events] == [0, 1, 2, 3, 4]
    seqs = [e.seq for e in events]
    assert seqs == sorted(seqs)
    assert len(set(seqs)) == 5


@pytest.mark.asyncio
async def test_unsubscribe_removes_only_that_subscriber():
    hub = EventHub()
    a = hub.subscribe({})
    b = hub.subscribe({})
    hub.unsubscribe(a)
    hub.publish(EventType.SIGNAL_NEW, {"id": "s1"})

    assert hub.subscriber_count == 1
    assert [e.type for e in await _drain(a)] == [EventType.CONNECTED, EventType.INIT]
    assert (await _drain(b))[-1].type == EventType.SIGNAL_NEW


@pytest.mark.asyncio
async def test_slow_subscriber_is_evicted_without_stalling_others():
    hub = EventHub(queue_size=4)
    slow = hub.subscribe({})
    fast = hub.subscribe({})

    received = []
    for i in range(6):
        hub.publish(EventType.TRADE_UPDATE, {"n": i})
        # The fast reader keeps up
        while fast.pending():
            received.append(await fast.next(timeout=1))

    assert hub.subscriber_count == 1
    assert slow.closed is True
    assert [e.data["n"] for e in received if e.type == EventType.TRADE_UPDATE] == list(range(6))

    # The evicted stream drains what it buffered, then ends
    drained = await _drain(slow)
    assert [e.type for e in drained][:2] == [EventType.CONNECTED, EventType.INIT]
    assert len(drained) == 4
    assert await slow.next(timeout=0.05) is None


@pytest.mark.asyncio
async def test_close_wakes_blocked_reader():
    hub = EventHub()
    sub = hub.subscribe({})
    await _drain(sub)

    waiter = asyncio.create_task(sub.next())
    await asyncio.sleep(0)
    hub.close()
    assert await asyncio.wait_for(waiter, timeout=1) is None
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_heartbeat_reaches_every_subscriber():
    hub = EventHub()
    subs = [hub.subscribe({}) for _ in range(3)]
    assert await hub.heartbeat() == 3
    for sub in subs:
        assert (await _drain(sub))[-1].type == EventType.HEARTBEAT


def test_format_sse_frame():
    event = HubEvent(seq=7, type=EventType.STATS_UPDATE, data={"winRate": 50.0}, timestamp=1)
    frame = format_sse(event)
    assert frame.startswith("id: 7\nevent: stats_update\ndata: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame.split("data: ", 1)[1]) == {"winRate": 50.0}


def test_queue_must_fit_initial_events():
    with pytest.raises(ValueError):
        EventHub(queue_size=1)
