from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

K = TypeVar("K")
V = TypeVar("V")


@dataclass(frozen=True)
class Put(Generic[K, V]):
    """Upsert `key` to `value`."""

    key: K
    value: V


@dataclass(frozen=True)
class Drop(Generic[K]):
    """Remove `key`. Dropping an absent key is a no-op, not an error."""

    key: K


# Arrival order between updates defines precedence: a later update for the
# same key always wins, inside a batch and across batches.
Update = Union[Put[K, V], Drop[K]]
