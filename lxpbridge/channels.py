"""In-process broadcast channels linking the bridge's components."""

from __future__ import annotations

import asyncio
import weakref
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Generic, TypeVar

CAPACITY = 2048

T = TypeVar("T")


@dataclass(frozen=True)
class Message:
    """An MQTT message, either to publish or as received."""

    topic: str
    payload: str
    retain: bool = False


class ChannelClosed(Exception):
    """Sending found no receivers, or receiving found the channel closed."""


class Subscription(Generic[T]):
    """One receiver of a broadcast channel.

    Holds at most ``capacity`` unread items; when full, the oldest unread
    item is dropped and counted in ``missed``.
    """

    def __init__(self, channel: Broadcast[T], capacity: int) -> None:
        self._channel = channel
        self._items: Deque[T] = deque(maxlen=capacity)
        self._ready = asyncio.Event()
        self.missed = 0

    def _push(self, item: T) -> None:
        if len(self._items) == self._items.maxlen:
            self.missed += 1
        self._items.append(item)
        self._ready.set()

    def _wake(self) -> None:
        self._ready.set()

    async def recv(self) -> T:
        """Wait for and return the next item; raise ChannelClosed once drained and closed."""
        while True:
            if self._items:
                item = self._items.popleft()
                if not self._items:
                    self._ready.clear()
                return item
            if self._channel.closed:
                raise ChannelClosed("channel is closed")
            self._ready.clear()
            await self._ready.wait()

    def close(self) -> None:
        """Stop receiving from the channel."""
        self._channel._unsubscribe(self)

    def __aiter__(self) -> Subscription[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.recv()
        except ChannelClosed:
            raise StopAsyncIteration from None

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class Broadcast(Generic[T]):
    """A bounded multi-producer, multi-consumer broadcast channel."""

    def __init__(self, capacity: int = CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.closed = False
        self._subscribers: weakref.WeakSet[Subscription[T]] = weakref.WeakSet()

    @property
    def receiver_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription[T]:
        """Return a new receiver that sees every item sent from now on."""
        subscription: Subscription[T] = Subscription(self, self.capacity)
        self._subscribers.add(subscription)
        return subscription

    def send(self, item: T) -> int:
        """Deliver ``item`` to every receiver and return how many there were."""
        if self.closed:
            raise ChannelClosed("channel is closed")
        receivers = list(self._subscribers)
        if not receivers:
            raise ChannelClosed("channel has no receivers")
        for receiver in receivers:
            receiver._push(item)
        return len(receivers)

    def close(self) -> None:
        """Close the channel; receivers drain what is left, then see ChannelClosed."""
        self.closed = True
        for receiver in list(self._subscribers):
            receiver._wake()

    def _unsubscribe(self, subscription: Subscription[T]) -> None:
        self._subscribers.discard(subscription)


@dataclass(eq=False)
class Channels:
    """The set of channels shared by all components of the bridge."""

    from_inverter: Broadcast[Any] = field(default_factory=Broadcast)
    to_inverter: Broadcast[Any] = field(default_factory=Broadcast)
    from_mqtt: Broadcast[Any] = field(default_factory=Broadcast)
    to_mqtt: Broadcast[Any] = field(default_factory=Broadcast)
    to_influx: Broadcast[Any] = field(default_factory=Broadcast)
    to_database: Broadcast[Any] = field(default_factory=Broadcast)
    read_register_cache: Broadcast[Any] = field(default_factory=Broadcast)
    to_register_cache: Broadcast[Any] = field(default_factory=Broadcast)