from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

DEFAULT_MAX_BATCH_SIZE = 1024
DEFAULT_MAX_LATENCY = 1.0  # seconds


def validate_max_batch_size(value: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"max_batch_size must be an int, got {type(value).__name__}")
    if value <= 0:
        raise ValueError(f"max_batch_size must be > 0, got {value}")
    return value


def validate_max_latency(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"max_latency must be a number of seconds, got {type(value).__name__}")
    latency = float(value)
    # NaN fails this comparison too
    if not latency > 0:
        raise ValueError(f"max_latency must be > 0, got {value}")
    return latency


@dataclass(frozen=True)
class SupplierConfig:
    """
    Batching configuration for a PrefetchingSupplier.

    max_batch_size:
        A window closes as soon as it holds this many updates.
    max_latency:
        Seconds a window may stay open after receiving its first update.
    """

    max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    max_latency: float = DEFAULT_MAX_LATENCY

    def __post_init__(self) -> None:
        validate_max_batch_size(self.max_batch_size)
        object.__setattr__(self, "max_latency", validate_max_latency(self.max_latency))

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SupplierConfig":
        """
        Build from a plain mapping.

        Accepted keys: max_batch_size, max_latency (seconds), max_latency_ms.
        """
        if not isinstance(raw, Mapping):
            raise TypeError("supplier config must be a mapping")
        unknown = set(raw) - {"max_batch_size", "max_latency", "max_latency_ms"}
        if unknown:
            raise KeyError(f"unknown supplier config keys: {sorted(unknown)}")
        if "max_latency" in raw and "max_latency_ms" in raw:
            raise ValueError("specify only one of max_latency / max_latency_ms")

        kwargs: dict[str, Any] = {}
        if "max_batch_size" in raw:
            kwargs["max_batch_size"] = raw["max_batch_size"]
        if "max_latency" in raw:
            kwargs["max_latency"] = raw["max_latency"]
        elif "max_latency_ms" in raw:
            ms = raw["max_latency_ms"]
            if isinstance(ms, bool) or not isinstance(ms, (int, float)):
                raise TypeError("max_latency_ms must be a number")
            kwargs["max_latency"] = float(ms) / 1000.0
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: str | Path) -> "SupplierConfig":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict[str, Any]:
        return {"max_batch_size": self.max_batch_size, "max_latency": self.max_latency}
