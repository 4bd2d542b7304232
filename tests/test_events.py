"""Tests for the event bus."""

import asyncio

from cruise.core.events import Event, EventBus, EventType, tick_event


def test_subscribe_and_emit():
    bus = EventBus()
    seen = []
    unsubscribe = bus.subscribe(EventType.SAFE_HIT, seen.append)

    bus.emit(Event(EventType.SAFE_HIT, data={"multiplier": 1.2}))
    bus.emit(Event(EventType.CRASHED))
    unsubscribe()
    bus.emit(Event(EventType.SAFE_HIT))

    assert [e.data["multiplier"] for e in seen] == [1.2]


def test_subscribe_all():
    bus = EventBus()
    seen = []
    bus.subscribe_all(lambda e: seen.append(e.type))

    bus.emit(Event(EventType.BET_PLACED))
    bus.emit(Event("custom"))

    assert seen == [EventType.BET_PLACED, "custom"]


def test_handler_errors_are_contained():
    bus = EventBus()
    seen = []

    def broken(event):
        raise ValueError("boom")

    bus.subscribe(EventType.CASHED_OUT, broken)
    bus.subscribe(EventType.CASHED_OUT, seen.append)

    bus.emit(Event(EventType.CASHED_OUT))

    assert len(seen) == 1


def test_sync_emit_skips_async_handlers():
    bus = EventBus()
    seen = []

    async def handler(event):
        seen.append(event)

    bus.subscribe(EventType.LIFEBOAT, handler)
    bus.emit(Event(EventType.LIFEBOAT))

    assert seen == []


def test_run_dispatches_queued_events():
    async def scenario():
        bus = EventBus()
        seen = []

        async def async_handler(event):
            seen.append(("async", event.data["id"]))

        bus.subscribe(EventType.OBSTACLE_SPAWNED, async_handler)
        bus.subscribe(EventType.OBSTACLE_SPAWNED, lambda e: seen.append(("sync", e.data["id"])))
        bus.subscribe(EventType.SHUTDOWN, lambda e: bus.stop())

        task = asyncio.create_task(bus.run())
        bus.queue_event(Event(EventType.OBSTACLE_SPAWNED, data={"id": 1}))
        bus.queue_event(Event(EventType.OBSTACLE_SPAWNED, data={"id": 2}))
        bus.queue_event(Event(EventType.SHUTDOWN))
        await asyncio.wait_for(task, timeout=5.0)
        return seen, bus.get_history()

    seen, history = asyncio.run(scenario())

    assert sorted(seen) == [("async", 1), ("async", 2), ("sync", 1), ("sync", 2)]
    assert [e.type for e in history] == [
        EventType.OBSTACLE_SPAWNED,
        EventType.OBSTACLE_SPAWNED,
        EventType.SHUTDOWN,
    ]


def test_history_is_bounded():
    bus = EventBus(history_limit=5)
    for frame in range(8):
        bus.emit(tick_event(0.016, frame))
    bus.emit(Event(EventType.CRASHED))

    history = bus.get_history(limit=10)
    assert len(history) == 5
    assert bus.get_history(EventType.CRASHED)[0].type == EventType.CRASHED
    assert history[0].data["frame"] == 4

    bus.clear_history()
    assert bus.get_history() == []
