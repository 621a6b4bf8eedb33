import asyncio

import pytest

from dotatui.ui.event_bus import EventBus
from dotatui.ui.events import HeroesLoadedEvent, NetworkTimingEvent


@pytest.mark.unit
@pytest.mark.asyncio
async def test_events_delivered_in_publish_order():
    bus = EventBus()
    for ms in (10, 20, 30):
        await bus.publish(NetworkTimingEvent(ms))

    received = [await bus.get(timeout=0.1) for _ in range(3)]

    assert [e.elapsed_ms for e in received] == [10, 20, 30]
    assert bus.get_stats()["published"] == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_times_out_with_none():
    bus = EventBus()
    assert await bus.get(timeout=0.01) is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_publish_blocks_when_full():
    bus = EventBus(capacity=1)
    await bus.publish(NetworkTimingEvent(1))

    blocked = asyncio.create_task(bus.publish(NetworkTimingEvent(2)))
    await asyncio.sleep(0.01)
    assert not blocked.done()

    await bus.get()
    await asyncio.wait_for(blocked, timeout=1.0)
    assert bus.pending() == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_events_survives_consumer_errors():
    bus = EventBus()
    seen = []

    def consumer(event):
        if isinstance(event, HeroesLoadedEvent):
            raise RuntimeError("boom")
        seen.append(event.elapsed_ms)

    task = asyncio.create_task(bus.process_events(consumer))
    await bus.publish(HeroesLoadedEvent(error="x"))
    await bus.publish(NetworkTimingEvent(5))
    await bus.drain()

    assert seen == [5]
    assert bus.get_stats()["consumer_errors"] == 1
    assert bus.is_processing

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert not bus.is_processing


@pytest.mark.unit
@pytest.mark.asyncio
async def test_process_events_awaits_coroutine_consumers():
    bus = EventBus()
    seen = []

    async def consumer(event):
        await asyncio.sleep(0)
        seen.append(event.elapsed_ms)

    task = asyncio.create_task(bus.process_events(consumer))
    await bus.publish(NetworkTimingEvent(7))
    await bus.drain()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert seen == [7]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stop_discards_undelivered_events():
    bus = EventBus()
    await bus.publish(NetworkTimingEvent(1))
    await bus.publish(NetworkTimingEvent(2))

    await bus.stop(grace=0.01)

    stats = bus.get_stats()
    assert stats["queued"] == 0
    assert stats["published"] == 2
    assert stats["delivered"] == 0
    assert not bus.is_processing
