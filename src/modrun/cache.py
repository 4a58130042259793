"""Instance-owned, single-flight memoization of asynchronous loads."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from typing import Generic, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class MemoCache(Generic[T]):
    """Map keys to single-assignment asynchronous results.

    The first caller that misses a key starts the underlying work as a task;
    every later caller, concurrent or not, awaits that same task. Settled
    entries (success or failure) are never replaced or evicted.
    """

    def __init__(self, name: str = "cache") -> None:
        self._name = name
        self._entries: dict[str, asyncio.Future[T]] = {}

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, key: str) -> asyncio.Future[T] | None:
        """Return the memoized entry for ``key`` without starting any work."""

        return self._entries.get(key)

    def start(self, key: str, factory: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """Return the entry for ``key``, starting ``factory`` on a miss."""

        entry = self._entries.get(key)
        if entry is None:
            LOGGER.debug("[%s] miss for %s", self._name, key)
            entry = asyncio.ensure_future(factory())
            self._entries[key] = entry
        return entry

    def alias(self, key: str, entry: asyncio.Future[T]) -> None:
        """Register an existing entry under an additional key."""

        current = self._entries.get(key)
        if current is not None and current is not entry:
            raise KeyError(f"[{self._name}] key {key!r} is already bound to another entry.")
        self._entries[key] = entry

    async def load(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Await the memoized result for ``key``, starting it if needed."""

        return await settle(self.start(key, factory))


async def settle(entry: asyncio.Future[T]) -> T:
    """Await a shared entry without letting one waiter cancel it for the others."""

    return await asyncio.shield(entry)


__all__ = ["MemoCache", "settle"]
