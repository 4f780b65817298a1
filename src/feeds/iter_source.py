from __future__ import annotations

import asyncio
from typing import AsyncIterable, AsyncIterator, Iterable

from prefetcher.updates import Update


async def iter_source(
    source: Iterable[Update] | AsyncIterable[Update],
    *,
    poll_interval: float | None = None,
) -> AsyncIterator[Update]:
    """
    Adapt a sync or async iterable of updates into an update source.
    The only responsibility is:
        iterate -> yield, in source order
    `poll_interval` paces sync sources (e.g. replaying a recorded feed).
    """
    # --- async source ---
    if hasattr(source, "__aiter__"):
        async for update in source:  # type: ignore[union-attr]
            yield update
    # --- sync source ---
    else:
        for update in source:  # type: ignore[union-attr]
            yield update
            # one loop turn per item
            await asyncio.sleep(poll_interval or 0)
