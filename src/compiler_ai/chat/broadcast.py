"""Last-value-wins multicast of state snapshots."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Generic, TypeVar

T = TypeVar("T")


class SnapshotBroadcaster(Generic[T]):
    """Publish successive values to any number of async subscribers.

    Each subscriber first receives the current value, then the newest
    value after every publish. A slow subscriber skips intermediate
    values but never sees one older than what it already received.
    Publishing never waits on subscribers.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._version = 0
        self._closed = False
        self._condition = asyncio.Condition()

    @property
    def value(self) -> T:
        return self._value

    @property
    def closed(self) -> bool:
        return self._closed

    async def publish(self, value: T) -> None:
        if self._closed:
            return
        async with self._condition:
            self._value = value
            self._version += 1
            self._condition.notify_all()

    async def close(self) -> None:
        """End every subscription after it has seen the latest value."""
        async with self._condition:
            self._closed = True
            self._condition.notify_all()

    async def subscribe(self) -> AsyncIterator[T]:
        seen = -1
        while True:
            async with self._condition:
                await self._condition.wait_for(
                    lambda: self._version != seen or self._closed
                )
                if self._version == seen:
                    return
                value = self._value
                seen = self._version
            yield value
