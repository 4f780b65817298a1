from __future__ import annotations

from collections.abc import Mapping
from typing import Generic, Iterable, Iterator, TypeVar

from prefetcher.updates import Drop, Put, Update

K = TypeVar("K")
V = TypeVar("V")


class Snapshot(Mapping, Generic[K, V]):
    """
    Immutable key-value snapshot.

    Semantics:
      - Read-only Mapping; compares equal to any mapping with the same items.
      - Never mutated after construction. A new batch produces a new Snapshot.
      - No iteration-order guarantee.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[K, V] | Iterable[tuple[K, V]] | None = None):
        self._data: dict[K, V] = dict(data) if data is not None else {}

    @classmethod
    def empty(cls) -> "Snapshot[K, V]":
        return cls()

    def __getitem__(self, key: K) -> V:
        return self._data[key]

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"Snapshot({self._data!r})"

    def to_dict(self) -> dict[K, V]:
        """Return a detached, mutable copy."""
        return dict(self._data)


def apply_batch(snapshot: Mapping[K, V], updates: Iterable[Update]) -> Snapshot[K, V]:
    """
    Fold a batch of updates over `snapshot`, in arrival order.

    Put(k, v) inserts or overwrites k; Drop(k) removes k when present.
    The fold runs against a private working copy, so `snapshot` is left
    untouched and callers only ever see the finished result.
    """
    working = dict(snapshot)
    for update in updates:
        if isinstance(update, Put):
            working[update.key] = update.value
        elif isinstance(update, Drop):
            working.pop(update.key, None)
        else:
            raise TypeError(f"Unsupported update type: {type(update).__name__}")
    return Snapshot(working)


def replay(initial: Mapping[K, V], batches: Iterable[Iterable[Update]]) -> Snapshot[K, V]:
    """Apply several batches in order. Equivalent to one apply_batch over their concatenation."""
    current: Snapshot[K, V] = initial if isinstance(initial, Snapshot) else Snapshot(initial)
    for batch in batches:
        current = apply_batch(current, batch)
    return current
