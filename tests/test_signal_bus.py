"""
In-process signal bus: fan-out, at-least-once dedupe, no replay, overflow.
"""
import asyncio

import pytest

from domain.events import Event
from infrastructure.realtime import InMemorySignalBus


def _event(topic="pet:1:access-requests", **payload):
    return Event(topic=topic, type="test.event", payload=payload)


async def test_subscriber_receives_published_event(bus):
    async with bus.subscribe("pet:1:access-requests") as sub:
        event = _event(n=1)
        await bus.publish(event.topic, event)

        received = await asyncio.wait_for(sub.get(), 1)

    assert received.id == event.id
    assert received.payload == {"n": 1}


async def test_fan_out_to_every_subscriber(bus):
    first = bus.subscribe("request:abc")
    second = bus.subscribe("request:abc")
    event = _event("request:abc")

    await bus.publish("request:abc", event)

    assert (await first.get()).id == event.id
    assert (await second.get()).id == event.id
    first.close()
    second.close()


async def test_other_topics_are_not_delivered(bus):
    async with bus.subscribe("request:abc") as sub:
        await bus.publish("request:xyz", _event("request:xyz"))

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(sub.get(), 0.05)


async def test_one_subscription_many_topics(bus):
    async with bus.subscribe("pet:1:access-requests", "user:9:notifications") as sub:
        await bus.publish("user:9:notifications", _event("user:9:notifications", n=2))

        received = await asyncio.wait_for(sub.get(), 1)

    assert received.payload == {"n": 2}


async def test_duplicate_delivery_is_dropped(bus):
    async with bus.subscribe("request:abc") as sub:
        event = _event("request:abc")
        await bus.publish("request:abc", event)
        await bus.publish("request:abc", event)
        later = _event("request:abc", n=2)
        await bus.publish("request:abc", later)

        assert (await sub.get()).id == event.id
        assert (await sub.get()).id == later.id


async def test_no_replay_for_late_subscribers(bus):
    await bus.publish("request:abc", _event("request:abc"))

    async with bus.subscribe("request:abc") as sub:
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(sub.get(), 0.05)


async def test_publish_without_subscribers(bus):
    await bus.publish("request:nobody", _event("request:nobody"))
    assert bus.subscriber_count("request:nobody") == 0


async def test_overflow_drops_oldest():
    bus = InMemorySignalBus(queue_size=2)
    async with bus.subscribe("t") as sub:
        events = [_event("t", n=i) for i in range(3)]
        for event in events:
            await bus.publish("t", event)

        assert (await sub.get()).payload == {"n": 1}
        assert (await sub.get()).payload == {"n": 2}


async def test_close_ends_iteration_and_unsubscribes(bus):
    sub = bus.subscribe("request:abc")
    assert bus.subscriber_count("request:abc") == 1

    received = []

    async def consume():
        async for event in sub:
            received.append(event)

    consumer = asyncio.create_task(consume())
    event = _event("request:abc")
    await bus.publish("request:abc", event)
    await asyncio.sleep(0)
    sub.close()
    await asyncio.wait_for(consumer, 1)

    assert [e.id for e in received] == [event.id]
    assert bus.subscriber_count("request:abc") == 0

    # publishing after close is a no-op for the closed subscription
    await bus.publish("request:abc", _event("request:abc"))


def test_subscribe_needs_a_topic(bus):
    with pytest.raises(ValueError):
        bus.subscribe()
