from __future__ import annotations
from typing import AsyncIterator, Protocol, runtime_checkable
from prefetcher.updates import Update


@runtime_checkable
class UpdateSource(Protocol):
    """
    Update source contract.

    An UpdateSource is responsible ONLY for:
        - producing Put / Drop updates
        - in the order the upstream emitted them
        - one at a time, push-style, possibly forever

    It MUST NOT:
        - batch, reorder or coalesce updates
        - know about snapshots or suppliers
        - block the event loop between updates

    Ending iteration means the upstream closed cleanly; raising means it
    failed. Either way the consuming supplier freezes on its last snapshot.
    """

    def __aiter__(self) -> AsyncIterator[Update]:
        ...
