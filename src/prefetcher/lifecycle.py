from __future__ import annotations

from enum import Enum


class SupplierState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    # source ended or failed; last snapshot still served
    FROZEN = "frozen"
    CLOSED = "closed"


_ALLOWED: dict[SupplierState | None, set[SupplierState]] = {
    None: {SupplierState.CREATED},
    SupplierState.CREATED: {SupplierState.RUNNING, SupplierState.CLOSED},
    SupplierState.RUNNING: {SupplierState.FROZEN, SupplierState.CLOSED},
    SupplierState.FROZEN: {SupplierState.CLOSED},
    SupplierState.CLOSED: set(),
}


class LifecycleGuard:
    """
    Enforces supplier state ordering.

    CREATED -> RUNNING -> (FROZEN ->) CLOSED

    Invalid transitions raise RuntimeError.
    """

    def __init__(self) -> None:
        self._state: SupplierState | None = None

    @property
    def state(self) -> SupplierState | None:
        return self._state

    def can_enter(self, state: SupplierState) -> bool:
        return state in _ALLOWED[self._state]

    def enter(self, state: SupplierState) -> None:
        if not self.can_enter(state):
            current = self._state.value if self._state is not None else None
            raise RuntimeError(f"Invalid supplier transition: {current} -> {state.value}")
        self._state = state
