from __future__ import annotations

import json
from pathlib import Path

import pytest

from prefetcher.config import DEFAULT_MAX_BATCH_SIZE, DEFAULT_MAX_LATENCY, SupplierConfig


def test_defaults() -> None:
    cfg = SupplierConfig()
    assert cfg.max_batch_size == DEFAULT_MAX_BATCH_SIZE
    assert cfg.max_latency == DEFAULT_MAX_LATENCY


@pytest.mark.parametrize("size", [0, -1])
def test_non_positive_batch_size_rejected(size: int) -> None:
    with pytest.raises(ValueError):
        SupplierConfig(max_batch_size=size)


@pytest.mark.parametrize("latency", [0, -0.5, float("nan")])
def test_non_positive_latency_rejected(latency: float) -> None:
    with pytest.raises(ValueError):
        SupplierConfig(max_latency=latency)


@pytest.mark.parametrize("kwargs", [{"max_batch_size": 1.5}, {"max_batch_size": True}, {"max_latency": "1s"}])
def test_wrong_types_rejected(kwargs: dict) -> None:
    with pytest.raises(TypeError):
        SupplierConfig(**kwargs)


def test_integer_latency_is_coerced_to_float() -> None:
    cfg = SupplierConfig(max_latency=2)
    assert isinstance(cfg.max_latency, float)
    assert cfg.max_latency == 2.0


def test_from_dict_accepts_milliseconds() -> None:
    cfg = SupplierConfig.from_dict({"max_batch_size": 2, "max_latency_ms": 250})
    assert cfg == SupplierConfig(max_batch_size=2, max_latency=0.25)


def test_from_dict_rejects_unknown_and_conflicting_keys() -> None:
    with pytest.raises(KeyError):
        SupplierConfig.from_dict({"batch": 3})
    with pytest.raises(ValueError):
        SupplierConfig.from_dict({"max_latency": 1, "max_latency_ms": 1000})


def test_from_json_round_trips_to_dict(tmp_path: Path) -> None:
    path = tmp_path / "supplier.json"
    path.write_text(json.dumps({"max_batch_size": 16, "max_latency": 0.5}), encoding="utf-8")
    cfg = SupplierConfig.from_json(path)
    assert cfg.to_dict() == {"max_batch_size": 16, "max_latency": 0.5}
