"""Keyed caches with shared asynchronous initialization."""

import logging
from dataclasses import dataclass, field
from typing import (
    Awaitable,
    Callable,
    Dict,
    Generic,
    Hashable,
    List,
    Optional,
    TypeVar,
)

import anyio

from .client.dav import CalDAVConnection, CalendarInfo

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _Pending(Generic[V]):
    """One in-flight initialization that concurrent callers wait on."""

    def __init__(self, generation: int):
        self.generation = generation
        self.done = anyio.Event()
        self.value: Optional[V] = None
        self.error: Optional[Exception] = None
        # Set when waiters must start over: the initializer was cancelled or
        # the cache was cleared while it ran
        self.retry = False


class AsyncKeyedCache(Generic[K, V]):
    """Cache whose missing entries are built by an async factory.

    Concurrent callers asking for the same missing key await one shared
    initialization. Failed initializations are not cached; every caller
    waiting on them receives the same exception. If the initializing caller
    is cancelled, the waiters retry instead of being cancelled with it.

    ``clear()`` also forgets initializations still in flight: their values
    are passed to ``_discard`` instead of being stored.
    """

    def __init__(self):
        self._values: Dict[K, V] = {}
        self._pending: Dict[K, _Pending[V]] = {}
        self._generation = 0

    def __contains__(self, key: K) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def get(self, key: K) -> V | None:
        return self._values.get(key)

    def values(self) -> List[V]:
        return list(self._values.values())

    def clear(self) -> None:
        self._values.clear()
        self._pending.clear()
        self._generation += 1

    async def _discard(self, value: V) -> None:
        """Release a value built for a generation that was cleared."""

    async def get_or_create(self, key: K, factory: Callable[[], Awaitable[V]]) -> V:
        # No await between the lookups and registering a pending entry,
        # so the check-and-insert is atomic on the event loop.
        while True:
            if key in self._values:
                return self._values[key]

            pending = self._pending.get(key)
            if pending is None:
                pending = _Pending(self._generation)
                self._pending[key] = pending
                if await self._initialize(key, pending, factory):
                    return pending.value
                continue

            await pending.done.wait()
            if pending.error is not None:
                raise pending.error
            if not pending.retry:
                return pending.value

    async def _initialize(
        self, key: K, pending: _Pending[V], factory: Callable[[], Awaitable[V]]
    ) -> bool:
        """Run the factory for ``pending``; False means the value was dropped."""
        try:
            value = await factory()
        except Exception as e:
            pending.error = e
            raise
        except BaseException:
            pending.retry = True
            raise
        else:
            if pending.generation == self._generation:
                self._values[key] = value
                pending.value = value
            else:
                pending.retry = True
        finally:
            if self._pending.get(key) is pending:
                del self._pending[key]
            pending.done.set()

        if pending.retry:
            logger.debug("Discarding a value built before the cache was cleared")
            await self._discard(value)
            return False
        return True


@dataclass
class CachedConnection:
    """A connected server session plus the calendars resolved on it."""

    connection: CalDAVConnection
    calendars: AsyncKeyedCache[str, CalendarInfo] = field(
        default_factory=AsyncKeyedCache
    )


class ConnectionCache(AsyncKeyedCache[tuple[str, str, str], CachedConnection]):
    """Connections keyed by (server_url, username, password)."""

    async def _discard(self, value: CachedConnection) -> None:
        await value.connection.close()

    async def close_all(self) -> None:
        # Clearing first makes handshakes still in flight close their own
        # connection when they finish
        cached_connections = self.values()
        self.clear()
        for cached in cached_connections:
            await cached.connection.close()
        logger.debug("Closed all cached CalDAV connections")
