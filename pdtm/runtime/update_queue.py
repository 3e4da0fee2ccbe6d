"""
Serialized update queue.

Every read-modify-write of shared aggregate state goes through here: at most
one operation in flight, strictly in arrival order. Storage has no per-key
atomic update, so interleaving two cycles would lose one of the writes.

Design:
* A single consumer asyncio.Task pulls (operation, future) pairs off an
  asyncio.Queue and awaits them one at a time.
* An operation's exception is logged, counted and set on its future; the
  consumer moves on to the next operation.
* The consumer starts lazily on the first submit, inside the running loop.

Usage::

    queue = SerialUpdateQueue()
    stats = await queue.submit(perform_retention_check, storage, True)
    await queue.close()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pdtm.exceptions import QueueClosedError
from pdtm.observability.logging import get_logger
from pdtm.observability.telemetry import counter

logger = get_logger(__name__)

T = TypeVar("T")

_STOP = object()


class SerialUpdateQueue:
    def __init__(self, name: str = "state-updates") -> None:
        self.name = name
        self._queue: asyncio.Queue[Any] | None = None
        self._consumer: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False

        # Stats
        self.completed: int = 0
        self.failed: int = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_consumer(self) -> asyncio.Queue[Any]:
        loop = asyncio.get_running_loop()
        # A previous event loop (e.g. an earlier asyncio.run) takes its consumer with it
        stale = self._loop is not loop or self._consumer is None or self._consumer.done()
        if self._queue is None or stale:
            self._loop = loop
            self._queue = asyncio.Queue()
            self._consumer = loop.create_task(
                self._consume(self._queue), name=f"queue-{self.name}"
            )
        return self._queue

    def submit(
        self, operation: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> asyncio.Future[T]:
        """
        Enqueue `operation(*args, **kwargs)` behind everything already queued.

        Must be called from a running event loop. Await the returned future
        for the operation's result or exception.

        Raises:
            QueueClosedError: If close() has been called
        """
        if self._closed:
            raise QueueClosedError(f"Update queue '{self.name}' is closed")

        queue = self._ensure_consumer()
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        queue.put_nowait((operation, args, kwargs, future))
        return future

    async def _consume(self, queue: asyncio.Queue[Any]) -> None:
        while True:
            item = await queue.get()
            try:
                if item is _STOP:
                    return
                operation, args, kwargs, future = item
                if future.cancelled():
                    continue
                try:
                    result = await operation(*args, **kwargs)
                except asyncio.CancelledError:
                    future.cancel()
                    raise
                except Exception as exc:
                    self.failed += 1
                    counter("queue.operation_failed")
                    logger.error(
                        "Queued operation %s failed: %s",
                        getattr(operation, "__name__", repr(operation)),
                        exc,
                    )
                    if not future.cancelled():
                        future.set_exception(exc)
                else:
                    self.completed += 1
                    if not future.cancelled():
                        future.set_result(result)
            finally:
                queue.task_done()

    async def drain(self) -> None:
        """Wait until every operation queued so far has finished."""
        if self._queue is not None and self._loop is asyncio.get_running_loop():
            await self._queue.join()

    async def close(self) -> None:
        """
        Stop accepting work, finish what is queued, then stop the consumer.

        Side Effects:
            - Subsequent submit() calls raise QueueClosedError
        """
        if self._closed:
            return
        self._closed = True
        if self._queue is None or self._consumer is None or self._consumer.done():
            return
        if self._loop is not asyncio.get_running_loop():
            return
        self._queue.put_nowait(_STOP)
        await self._consumer
        logger.debug(
            "Update queue '%s' closed: completed=%d failed=%d",
            self.name,
            self.completed,
            self.failed,
        )
