from __future__ import annotations

import pytest

from prefetcher.lifecycle import LifecycleGuard, SupplierState


def test_lifecycle_guard_happy_path() -> None:
    guard = LifecycleGuard()
    guard.enter(SupplierState.CREATED)
    guard.enter(SupplierState.RUNNING)
    guard.enter(SupplierState.FROZEN)
    guard.enter(SupplierState.CLOSED)
    assert guard.state is SupplierState.CLOSED


def test_lifecycle_guard_allows_close_while_running() -> None:
    guard = LifecycleGuard()
    guard.enter(SupplierState.CREATED)
    guard.enter(SupplierState.RUNNING)
    guard.enter(SupplierState.CLOSED)


def test_lifecycle_guard_rejects_invalid_start() -> None:
    guard = LifecycleGuard()
    with pytest.raises(RuntimeError):
        guard.enter(SupplierState.RUNNING)


def test_lifecycle_guard_rejects_reopen_after_close() -> None:
    guard = LifecycleGuard()
    guard.enter(SupplierState.CREATED)
    guard.enter(SupplierState.CLOSED)
    assert not guard.can_enter(SupplierState.RUNNING)
    with pytest.raises(RuntimeError):
        guard.enter(SupplierState.RUNNING)
