from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Generic, TypeVar

from feeds.contracts.source import UpdateSource

from prefetcher.config import validate_max_batch_size, validate_max_latency
from prefetcher.utils.asyncio import SourceEnd, SourcePump
from prefetcher.utils.logger import get_logger, log_debug

T = TypeVar("T")


class Trigger(str, Enum):
    """Which condition closed a window."""

    SIZE = "size"
    TIME = "time"
    # source exhausted while the window still held updates
    END = "end"


@dataclass(frozen=True)
class ClosedBatch(Generic[T]):
    updates: tuple[T, ...]
    trigger: Trigger
    closed_at: float  # event-loop monotonic time

    def __len__(self) -> int:
        return len(self.updates)


class BatchWindow:
    """
    Turns a push-style stream of updates into a stream of closed batches.

    A window closes on whichever comes first:
      - it holds `max_batch_size` updates (closed synchronously on append), or
      - `max_latency` seconds passed since its first update.
    An empty window does not age and never closes.

    Both triggers are evaluated by a single loop over one window state, so
    each window is closed exactly once. The loop is iterative; stream and
    batch length do not grow the call stack.
    """

    def __init__(self, max_batch_size: int, max_latency: float, *, name: str | None = None):
        self.max_batch_size = validate_max_batch_size(max_batch_size)
        self.max_latency = validate_max_latency(max_latency)
        self.name = name or "window"
        self._logger = get_logger(__name__)

    def _close(self, pending: list[Any], trigger: Trigger, now: float) -> ClosedBatch[Any]:
        log_debug(
            self._logger,
            "window.closed",
            window=self.name,
            trigger=trigger,
            size=len(pending),
        )
        return ClosedBatch(updates=tuple(pending), trigger=trigger, closed_at=now)

    async def batches(self, source: UpdateSource) -> AsyncIterator[ClosedBatch[T]]:
        """
        Consume `source` and yield closed batches in arrival order.

        A source failure discards the open window and is re-raised here.
        The internal queue holds at most `max_batch_size` updates, so a fast
        source is paced by the consumer.
        """
        loop = asyncio.get_running_loop()
        pump: SourcePump[T] = SourcePump(
            source,
            maxsize=self.max_batch_size,
            logger=self._logger,
            context={"window": self.name},
        )
        pump.start()

        pending: list[T] = []
        deadline: float | None = None
        # outlives a deadline miss, so a timeout never drops an item
        getter: asyncio.Task[T | SourceEnd] | None = None
        try:
            while True:
                timeout: float | None = None
                if deadline is not None:
                    timeout = deadline - loop.time()
                    if timeout <= 0:
                        batch = self._close(pending, Trigger.TIME, loop.time())
                        pending, deadline = [], None
                        yield batch
                        continue

                if getter is None and not pump.queue.empty():
                    item = pump.queue.get_nowait()
                else:
                    if getter is None:
                        getter = loop.create_task(pump.queue.get())
                    done, _ = await asyncio.wait({getter}, timeout=timeout)
                    if not done:
                        continue
                    item, getter = getter.result(), None

                if isinstance(item, SourceEnd):
                    if item.error is not None:
                        raise item.error
                    if pending:
                        yield self._close(pending, Trigger.END, loop.time())
                    return

                if not pending:
                    deadline = loop.time() + self.max_latency
                pending.append(item)
                if len(pending) >= self.max_batch_size:
                    batch = self._close(pending, Trigger.SIZE, loop.time())
                    pending, deadline = [], None
                    yield batch
        finally:
            if getter is not None:
                getter.cancel()
            await pump.stop()
