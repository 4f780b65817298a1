from __future__ import annotations

import asyncio
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Callable, Generic, Mapping, TypeVar

from feeds.contracts.source import UpdateSource

from prefetcher.config import DEFAULT_MAX_BATCH_SIZE, DEFAULT_MAX_LATENCY, SupplierConfig
from prefetcher.lifecycle import LifecycleGuard, SupplierState
from prefetcher.snapshot import Snapshot, apply_batch
from prefetcher.updates import Update
from prefetcher.utils.logger import get_logger, log_debug, log_exception, log_info
from prefetcher.window import BatchWindow, ClosedBatch, Trigger

K = TypeVar("K")
V = TypeVar("V")

# Logical start of time: the value last_successful_update() reports until a
# window first closes on its latency timer.
START_OF_TIME = 0.0


@dataclass
class SupplierStats:
    """Diagnostic counters. Written only by the background task."""

    batches_applied: int = 0
    updates_applied: int = 0
    by_trigger: dict[str, int] = field(default_factory=lambda: {t.value: 0 for t in Trigger})


class PrefetchingSupplier(Generic[K, V]):
    """
    Serves the latest known snapshot of a key-value mapping.

    A background task drives the update source through a BatchWindow, folds
    each closed batch into a new Snapshot and publishes it by swapping one
    reference. Readers never block and never see a partially applied batch.

    Semantics:
      - get() returns the current snapshot; any thread may call it.
      - last_successful_update() moves only when a window closed because
        max_latency elapsed. Size-closed batches leave it unchanged.
      - If the source ends or fails the supplier freezes: reads keep
        returning the last published snapshot.
    """

    def __init__(
        self,
        initial: Mapping[K, V],
        update_source: UpdateSource,
        config: SupplierConfig,
        *,
        clock: Callable[[], float] = time.time,
        name: str | None = None,
    ):
        self.config = config
        self.name = name or "supplier"
        self._source = update_source
        self._clock = clock
        self._window = BatchWindow(config.max_batch_size, config.max_latency, name=self.name)
        self._logger = get_logger(__name__)
        self._guard = LifecycleGuard()
        self._guard.enter(SupplierState.CREATED)

        # the only shared mutable cells; single writer
        self._snapshot: Snapshot[K, V] = initial if isinstance(initial, Snapshot) else Snapshot(initial)
        self._last_successful_update: float = START_OF_TIME

        self._task: asyncio.Task[None] | None = None
        self._failure: BaseException | None = None
        self.stats = SupplierStats()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def with_initial_value(
        cls,
        initial: Mapping[K, V],
        update_source: UpdateSource,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        max_latency: float = DEFAULT_MAX_LATENCY,
        *,
        clock: Callable[[], float] = time.time,
        name: str | None = None,
    ) -> "PrefetchingSupplier[K, V]":
        """
        Create a supplier serving `initial` and start consuming `update_source`.

        Must be called while an event loop is running. Invalid configuration
        raises before anything is started.
        """
        config = SupplierConfig(max_batch_size=max_batch_size, max_latency=max_latency)
        return cls.from_config(initial, update_source, config, clock=clock, name=name)

    @classmethod
    def from_config(
        cls,
        initial: Mapping[K, V],
        update_source: UpdateSource,
        config: SupplierConfig,
        *,
        clock: Callable[[], float] = time.time,
        name: str | None = None,
    ) -> "PrefetchingSupplier[K, V]":
        supplier = cls(initial, update_source, config, clock=clock, name=name)
        supplier._start()
        return supplier

    def _start(self) -> None:
        loop = asyncio.get_running_loop()
        self._guard.enter(SupplierState.RUNNING)
        self._task = loop.create_task(self._run(), name=f"prefetcher:{self.name}")
        log_info(
            self._logger,
            "supplier.started",
            supplier=self.name,
            max_batch_size=self.config.max_batch_size,
            max_latency=self.config.max_latency,
            initial_size=len(self._snapshot),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self) -> Snapshot[K, V]:
        return self._snapshot

    def last_successful_update(self) -> float:
        return self._last_successful_update

    @property
    def state(self) -> SupplierState | None:
        return self._guard.state

    @property
    def failure(self) -> BaseException | None:
        """Exception that terminated the update source, if any."""
        return self._failure

    # ------------------------------------------------------------------
    # Background pipeline
    # ------------------------------------------------------------------

    def _publish(self, batch: ClosedBatch[Update]) -> None:
        # No await in here: a batch is applied in full or not at all.
        self._snapshot = apply_batch(self._snapshot, batch.updates)
        if batch.trigger is Trigger.TIME:
            self._last_successful_update = self._clock()

        self.stats.batches_applied += 1
        self.stats.updates_applied += len(batch)
        self.stats.by_trigger[batch.trigger.value] += 1
        log_debug(
            self._logger,
            "supplier.batch_applied",
            supplier=self.name,
            trigger=batch.trigger,
            size=len(batch),
            snapshot_size=len(self._snapshot),
        )

    async def _run(self) -> None:
        try:
            async with aclosing(self._window.batches(self._source)) as batches:
                async for batch in batches:
                    self._publish(batch)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._failure = exc
            self._guard.enter(SupplierState.FROZEN)
            log_exception(
                self._logger,
                "supplier.source_failed",
                supplier=self.name,
                batches_applied=self.stats.batches_applied,
            )
            return
        self._guard.enter(SupplierState.FROZEN)
        log_info(
            self._logger,
            "supplier.source_exhausted",
            supplier=self.name,
            batches_applied=self.stats.batches_applied,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def wait_closed(self) -> None:
        """Wait until the background task has stopped (source end, failure or close)."""
        task = self._task
        if task is None:
            return
        await asyncio.wait({task})

    async def aclose(self) -> None:
        """Stop consuming the source. Idempotent; reads keep working afterwards."""
        if self._guard.state is SupplierState.CLOSED:
            return
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            # asyncio.wait never raises the task's own CancelledError, so only
            # a cancel aimed at the caller propagates from here.
            await asyncio.wait({task})
        if self._guard.state is SupplierState.CLOSED:
            # a concurrent aclose() finished first
            return
        self._guard.enter(SupplierState.CLOSED)
        log_info(
            self._logger,
            "supplier.closed",
            supplier=self.name,
            batches_applied=self.stats.batches_applied,
            updates_applied=self.stats.updates_applied,
        )

    async def __aenter__(self) -> "PrefetchingSupplier[K, V]":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
