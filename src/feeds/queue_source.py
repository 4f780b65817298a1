from __future__ import annotations

import asyncio
from typing import AsyncIterator

from prefetcher.updates import Update
from prefetcher.utils.logger import get_logger, log_debug


class _Closed:
    __slots__ = ("error",)

    def __init__(self, error: BaseException | None = None):
        self.error = error


class QueueSource:
    """
    Unbounded asyncio.Queue-backed update source.

    Producers offer updates; a single consumer iterates them in offer order.
    close() ends iteration once already-queued updates are drained; fail(exc)
    raises `exc` in the consumer at the same point.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Update | _Closed] = asyncio.Queue()
        self._closed = False
        self._logger = get_logger(__name__)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("QueueSource is closed")

    async def offer(self, update: Update) -> None:
        self._check_open()
        await self._queue.put(update)

    def offer_nowait(self, update: Update) -> None:
        self._check_open()
        self._queue.put_nowait(update)

    async def offer_all(self, updates) -> int:
        n = 0
        for update in updates:
            await self.offer(update)
            n += 1
        return n

    def close(self) -> None:
        self._end(_Closed())

    def fail(self, error: BaseException) -> None:
        self._end(_Closed(error))

    def _end(self, marker: _Closed) -> None:
        if self._closed:
            return
        self._closed = True
        log_debug(self._logger, "queue_source.closed", failed=marker.error is not None, pending=self._queue.qsize())
        self._queue.put_nowait(marker)

    def qsize(self) -> int:
        return self._queue.qsize()

    async def __aiter__(self) -> AsyncIterator[Update]:
        while True:
            item = await self._queue.get()
            if isinstance(item, _Closed):
                if item.error is not None:
                    raise item.error
                return
            yield item
