"""Realtime signal bus - topic pub/sub between guardian and professional sessions.

Delivery contract:
- at-least-once; a publisher may repeat an event, so every subscription
  drops event ids it has already delivered
- no ordering guarantee across independent publishers
- no replay: a subscriber only sees events published after it subscribed,
  so clients re-read state after (re)subscribing
"""
import asyncio
from collections import OrderedDict, defaultdict
from typing import Any, Dict, Protocol, Set

import structlog

from domain.events import Event

logger = structlog.get_logger(__name__)

SEEN_IDS_LIMIT = 1024


class Subscription:
    """Async iterator over the events of one or more topics"""

    def __init__(self, bus: "InMemorySignalBus", topics: tuple, maxsize: int):
        self.bus = bus
        self.topics = topics
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1)  # +1 for the close sentinel
        self._maxsize = maxsize
        self._seen: "OrderedDict[Any, None]" = OrderedDict()

    def deliver(self, event: Event) -> None:
        if self.closed:
            return
        if self._queue.qsize() >= self._maxsize:
            dropped = self._queue.get_nowait()
            logger.warning(
                "realtime_subscriber_overflow",
                topics=list(self.topics),
                dropped_event_id=str(dropped.id) if dropped else None,
            )
        self._queue.put_nowait(event)

    async def get(self) -> Event:
        while True:
            event = await self._queue.get()
            if event is None:
                raise StopAsyncIteration
            if event.id in self._seen:
                continue
            self._seen[event.id] = None
            if len(self._seen) > SEEN_IDS_LIMIT:
                self._seen.popitem(last=False)
            return event

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.bus._unsubscribe(self)
        self._queue.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Event:
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class SignalBus(Protocol):
    def subscribe(self, *topics: str) -> Subscription: ...

    async def publish(self, topic: str, event: Event) -> None: ...


class InMemorySignalBus:
    """In-process broker: one bounded queue per subscriber"""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Dict[str, Set[Subscription]] = defaultdict(set)

    def subscribe(self, *topics: str) -> Subscription:
        if not topics:
            raise ValueError("subscribe() needs at least one topic")
        sub = Subscription(self, topics, self.queue_size)
        for topic in topics:
            self._subscribers[topic].add(sub)
        logger.debug("realtime_subscribed", topics=list(topics))
        return sub

    async def publish(self, topic: str, event: Event) -> None:
        subscribers = list(self._subscribers.get(topic, ()))
        for sub in subscribers:
            sub.deliver(event)
        logger.debug("realtime_published", topic=topic, type=event.type, event_id=str(event.id), subscribers=len(subscribers))

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    def _unsubscribe(self, sub: Subscription) -> None:
        for topic in sub.topics:
            subs = self._subscribers.get(topic)
            if subs is None:
                continue
            subs.discard(sub)
            if not subs:
                del self._subscribers[topic]
