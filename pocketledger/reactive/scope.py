"""
Subscription Scopes

A controller never holds a raw callback on a stream. Every stream it
follows and every one-shot write it starts belongs to the controller's
scope, and closing the scope cancels all of them.

DESIGN DECISION: Storage faults do not kill the scope. A StorageError
raised by a stream or a write is handed to the scope's error handler,
which the owning controller uses to publish an error state. Any other
exception a stream raises is logged and handed to the same handler,
since no one awaits a stream's task; with no handler it is kept and
raised again from close(). A failed one-shot task re-raises to whoever
awaits it.
"""

import asyncio
from typing import Any, AsyncIterable, Callable, Coroutine, Optional, TypeVar

import structlog

from pocketledger.services.storage.interface import StorageError


T = TypeVar("T")

ErrorHandler = Callable[[Exception], None]


class ScopeClosedError(RuntimeError):
    """Work was started on a scope that has already been closed."""
    pass


class Subscription:
    """Handle on one stream being collected into a handler."""

    def __init__(self, task: asyncio.Task, name: str):
        self._task = task
        self.name = name

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait for the collecting task to finish after cancel()."""
        await asyncio.gather(self._task, return_exceptions=True)


class SubscriptionScope:
    """
    Lifetime of everything a controller has running.

    collect() follows a stream, launch() runs a one-shot coroutine.
    close() cancels both kinds; nothing started from a closed scope
    can ever deliver a result.
    """

    def __init__(self, name: str, on_error: Optional[ErrorHandler] = None):
        self.name = name
        self._on_error = on_error
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self._failures: list[Exception] = []
        self._logger = structlog.get_logger(__name__).bind(scope=name)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_count(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def collect(
        self,
        stream: AsyncIterable[T],
        handler: Callable[[T], None],
        name: str = "stream",
    ) -> Subscription:
        """Feed every value of `stream` to `handler` until cancelled."""
        task = self._spawn(self._collect(stream, handler, name), name)
        return Subscription(task, name)

    def launch(self, coro: Coroutine[Any, Any, T], name: str = "task") -> asyncio.Task:
        """Run a one-shot coroutine inside the scope."""
        if self._closed:
            coro.close()
        return self._spawn(self._guard(coro, name), name)

    async def close(self) -> None:
        """
        Cancel everything still running and wait for it to stop.

        Raises the first failure no error handler was there to take.
        """
        if self._closed:
            return
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._logger.debug("scope_closed", cancelled=len(tasks))
        if self._failures:
            raise self._failures[0]

    def _spawn(self, coro: Coroutine[Any, Any, T], name: str) -> asyncio.Task:
        if self._closed:
            coro.close()
            raise ScopeClosedError(f"Scope '{self.name}' is closed")
        task = asyncio.get_running_loop().create_task(coro, name=f"{self.name}:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _collect(
        self,
        stream: AsyncIterable[T],
        handler: Callable[[T], None],
        name: str,
    ) -> None:
        try:
            async for value in stream:
                handler(value)
        except StorageError as e:
            self._report(e, name)
        except Exception as e:
            # Nobody awaits a collecting task, so the owner hears about it
            self._logger.error("scope_stream_failed", work=name, error=repr(e), exc_info=e)
            if self._on_error is None:
                self._failures.append(e)
            else:
                self._on_error(e)

    async def _guard(self, coro: Coroutine[Any, Any, T], name: str) -> Optional[T]:
        try:
            return await coro
        except StorageError as e:
            self._report(e, name)
            return None
        except Exception as e:
            self._logger.error("scope_task_failed", work=name, error=repr(e), exc_info=e)
            raise

    def _report(self, error: StorageError, name: str) -> None:
        self._logger.error("scope_storage_error", work=name, error=str(error))
        if self._on_error is None:
            self._failures.append(error)
            return
        self._on_error(error)
