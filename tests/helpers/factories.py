from __future__ import annotations

import asyncio
from typing import Any, Iterable

from prefetcher.updates import Drop, Put, Update

# Long enough for the background task to drain already-offered updates,
# far below any max_latency the tests rely on not firing.
SETTLE_S = 0.05


async def settle(seconds: float = SETTLE_S) -> None:
    await asyncio.sleep(seconds)


def puts(key: str, n: int, *, start: int = 0) -> list[Update]:
    return [Put(key, f"value: {i}") for i in range(start, start + n)]


def as_dict(snapshot: Any) -> dict:
    return dict(snapshot.items())


def chunk(updates: Iterable[Update], sizes: Iterable[int]) -> list[list[Update]]:
    """Split updates into consecutive chunks; the remainder forms a last chunk."""
    items = list(updates)
    out: list[list[Update]] = []
    pos = 0
    for size in sizes:
        if pos >= len(items):
            break
        out.append(items[pos : pos + size])
        pos += size
    if pos < len(items):
        out.append(items[pos:])
    return out


class FakeClock:
    """Injectable wall clock: returns `now`, advanced by hand."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


__all__ = ["Drop", "Put", "FakeClock", "as_dict", "chunk", "puts", "settle"]
