from __future__ import annotations

import asyncio

import pytest

from feeds.iter_source import iter_source
from feeds.queue_source import QueueSource
from helpers.factories import puts, settle
from prefetcher.updates import Put
from prefetcher.window import BatchWindow, ClosedBatch, Trigger


async def _collect(window: BatchWindow, source) -> list[ClosedBatch]:
    return [batch async for batch in window.batches(source)]


def _start_collecting(window: BatchWindow, source) -> tuple[list[ClosedBatch], asyncio.Task]:
    out: list[ClosedBatch] = []

    async def run() -> None:
        async for batch in window.batches(source):
            out.append(batch)

    return out, asyncio.create_task(run())


@pytest.mark.parametrize("kwargs", [{"max_batch_size": 0, "max_latency": 1.0}, {"max_batch_size": 1, "max_latency": 0}])
def test_window_rejects_invalid_configuration(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        BatchWindow(**kwargs)


@pytest.mark.asyncio
async def test_size_closes_windows_and_end_flushes_remainder() -> None:
    window = BatchWindow(max_batch_size=3, max_latency=10.0)
    batches = await _collect(window, iter_source(puts("k", 7)))

    assert [len(b) for b in batches] == [3, 3, 1]
    assert [b.trigger for b in batches] == [Trigger.SIZE, Trigger.SIZE, Trigger.END]
    flat = [u for b in batches for u in b.updates]
    assert flat == puts("k", 7)


@pytest.mark.asyncio
async def test_empty_stream_never_emits() -> None:
    window = BatchWindow(max_batch_size=2, max_latency=0.01)
    assert await _collect(window, iter_source([])) == []


@pytest.mark.asyncio
async def test_time_closes_partial_window() -> None:
    source = QueueSource()
    window = BatchWindow(max_batch_size=10, max_latency=0.05)
    out, task = _start_collecting(window, source)

    await source.offer(Put("new", "value"))
    await settle(0.01)
    assert out == []

    await settle(0.25)
    assert len(out) == 1
    assert out[0].trigger is Trigger.TIME
    assert out[0].updates == (Put("new", "value"),)

    source.close()
    await task
    assert len(out) == 1


@pytest.mark.asyncio
async def test_empty_window_does_not_age() -> None:
    source = QueueSource()
    window = BatchWindow(max_batch_size=10, max_latency=0.1)
    out, task = _start_collecting(window, source)

    # idle for longer than max_latency before the first update
    await settle(0.3)
    await source.offer(Put("a", 1))
    await settle(0.02)
    assert out == []

    await settle(0.3)
    assert [b.trigger for b in out] == [Trigger.TIME]

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_size_wins_before_timer() -> None:
    source = QueueSource()
    window = BatchWindow(max_batch_size=2, max_latency=0.2)
    out, task = _start_collecting(window, source)

    await source.offer(Put("a", 1))
    await source.offer(Put("a", 2))
    await settle()
    assert [b.trigger for b in out] == [Trigger.SIZE]

    # the closed window's timer must not fire an empty or duplicate batch
    await settle(0.4)
    assert len(out) == 1

    source.close()
    await task


@pytest.mark.asyncio
async def test_source_failure_discards_open_window() -> None:
    source = QueueSource()
    window = BatchWindow(max_batch_size=2, max_latency=10.0)
    for update in puts("k", 3):
        source.offer_nowait(update)
    source.fail(ConnectionError("feed lost"))

    out: list[ClosedBatch] = []
    with pytest.raises(ConnectionError):
        async for batch in window.batches(source):
            out.append(batch)

    assert [len(b) for b in out] == [2]


@pytest.mark.asyncio
async def test_long_stream_keeps_order_across_batches() -> None:
    updates = [Put(f"k{i % 7}", i) for i in range(20_000)]
    window = BatchWindow(max_batch_size=500, max_latency=10.0)
    batches = await _collect(window, iter_source(updates))

    assert len(batches) == 40
    assert all(b.trigger is Trigger.SIZE for b in batches)
    assert [u for b in batches for u in b.updates] == updates
