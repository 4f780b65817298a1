from __future__ import annotations

import asyncio
from logging import Logger
from typing import Any, AsyncIterable, Generic, TypeVar

from prefetcher.utils.logger import log_debug

T = TypeVar("T")


class SourceEnd:
    """Marker pushed by a pump once its source is exhausted or has failed."""

    __slots__ = ("error",)

    def __init__(self, error: BaseException | None = None):
        self.error = error


class SourcePump(Generic[T]):
    """
    Copies an async iterable into a bounded asyncio.Queue from a reader task.

    Consumers can then wait on the queue with a timeout without cancelling
    the upstream iterator. A full queue suspends the reader, so a slow
    consumer throttles the source. The queue always ends with one SourceEnd
    marker, unless the pump itself is cancelled.
    """

    def __init__(
        self,
        source: AsyncIterable[T],
        *,
        maxsize: int,
        logger: Logger,
        context: dict[str, Any],
    ):
        self._source = source
        self._logger = logger
        self._context = context
        self.queue: asyncio.Queue[T | SourceEnd] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task[None] | None = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        count = 0
        try:
            async for item in self._source:
                await self.queue.put(item)
                count += 1
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log_debug(self._logger, "pump.source_error", count=count, error=exc, **self._context)
            await self.queue.put(SourceEnd(exc))
            return
        log_debug(self._logger, "pump.source_exhausted", count=count, **self._context)
        await self.queue.put(SourceEnd())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.wait({task})
