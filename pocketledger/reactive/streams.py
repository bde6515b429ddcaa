"""
Live Query Streams

Storage reads are streams: they emit the current result right away,
then emit again every time a write touches a table the query reads.

DESIGN DECISION: Change signals are conflated. If several writes land
before a watcher gets to run, it re-reads once and sees the latest
data. Intermediate states are skipped; the final state never is.
"""

import asyncio
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Generic,
    Iterable,
    TypeVar,
)


T = TypeVar("T")


_MISSING = object()
_DONE = object()


class ChangeListener:
    """Wakes up when any of its tables is written to."""

    def __init__(self, notifier: "ChangeNotifier", tables: frozenset[str]):
        self._notifier = notifier
        self.tables = tables
        self._event = asyncio.Event()

    def signal(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
        self._event.clear()

    def close(self) -> None:
        self._notifier.remove(self)


class ChangeNotifier:
    """Tells live queries which tables a write touched."""

    def __init__(self):
        self._listeners: set[ChangeListener] = set()

    def listen(self, tables: Iterable[str]) -> ChangeListener:
        listener = ChangeListener(self, frozenset(tables))
        self._listeners.add(listener)
        return listener

    def remove(self, listener: ChangeListener) -> None:
        self._listeners.discard(listener)

    def notify(self, *tables: str) -> None:
        changed = set(tables)
        for listener in list(self._listeners):
            if listener.tables & changed:
                listener.signal()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class LiveQuery(Generic[T]):
    """
    A query whose result is re-emitted whenever its tables change.

    Iterate with `async for` to follow it, or await first() for a
    one-shot read.
    """

    def __init__(
        self,
        notifier: ChangeNotifier,
        tables: Iterable[str],
        fetch: Callable[[], Awaitable[T]],
    ):
        self._notifier = notifier
        self._tables = frozenset(tables)
        self._fetch = fetch

    def __aiter__(self) -> AsyncIterator[T]:
        return self._emit()

    async def _emit(self) -> AsyncIterator[T]:
        # Listen before the first read so a write racing it is not missed
        listener = self._notifier.listen(self._tables)
        try:
            yield await self._fetch()
            while True:
                await listener.wait()
                yield await self._fetch()
        finally:
            listener.close()

    async def first(self) -> T:
        return await self._fetch()


async def combine_latest(*sources: AsyncIterable[Any]) -> AsyncIterator[tuple]:
    """
    Join several streams by latest value.

    Nothing is emitted until every source has produced a value. After
    that, each emission from any source produces a new tuple holding
    the latest value of every source. An error from any source is
    raised to the consumer; the other sources are then cancelled.
    """
    queue: asyncio.Queue = asyncio.Queue()

    async def pump(index: int, source: AsyncIterable[Any]) -> None:
        try:
            async for value in source:
                await queue.put((index, value, None))
        except Exception as exc:
            await queue.put((index, None, exc))
            return
        await queue.put((index, _DONE, None))

    tasks = [
        asyncio.create_task(pump(index, source))
        for index, source in enumerate(sources)
    ]
    latest = [_MISSING] * len(sources)
    finished = 0
    try:
        while finished < len(sources):
            index, value, error = await queue.get()
            if error is not None:
                raise error
            if value is _DONE:
                finished += 1
                continue
            latest[index] = value
            if all(item is not _MISSING for item in latest):
                yield tuple(latest)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class StateHolder(Generic[T]):
    """
    Holds the current snapshot of a screen and lets observers follow it.

    Only the owning controller calls set(). Observers get the current
    value first, then every replacement; a slow observer skips straight
    to the latest.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._watchers: set[asyncio.Event] = set()

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for event in list(self._watchers):
            event.set()

    def update(self, transform: Callable[[T], T]) -> T:
        self.set(transform(self._value))
        return self._value

    async def watch(self) -> AsyncIterator[T]:
        event = asyncio.Event()
        self._watchers.add(event)
        try:
            last: Any = _MISSING
            while True:
                if self._value is not last:
                    last = self._value
                    yield last
                await event.wait()
                event.clear()
        finally:
            self._watchers.discard(event)
