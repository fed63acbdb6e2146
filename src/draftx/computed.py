"""Computed values — derived state over a Live State view.

A Computed wraps a pure function of the state. Evaluating it reads through its
own Live State view, so every path it touches lands in its dependency set. A
mutation bus subscription bumps a version counter whenever a published
mutation hits one of those paths; the next get_value() re-evaluates only if the
version moved.

Dependencies are never cleared between evaluations. A path read once stays a
trigger even if a later evaluation takes another branch.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, TypeVar

from draftx._paths import PathAccessor
from draftx.bus import MutationBus, MutationRecord
from draftx.views import DerivedLookup, create_state_view

T = TypeVar("T")

_UNSET = object()


class Computed(Generic[T]):
    """A derived value with lazy, version-based invalidation."""

    __slots__ = (
        "_fn", "_state", "_deps", "_live_state", "_value",
        "_version", "_last_version", "_unsubscribe",
    )

    def __init__(
        self,
        fn: Callable[[PathAccessor], T],
        definitions: dict,
        live_state: dict,
        bus: MutationBus,
        derived_lookup: DerivedLookup | None = None,
    ) -> None:
        self._fn = fn
        self._state, self._deps = create_state_view(
            definitions, live_state, bus, "computed", derived_lookup
        )
        self._live_state = live_state
        self._value: Any = _UNSET
        self._version = 0
        self._last_version = -1
        self._unsubscribe = bus.subscribe(self._on_mutation)

    @property
    def version(self) -> int:
        return self._version

    @property
    def dependencies(self) -> frozenset[str]:
        return frozenset(self._deps)

    def get_value(self) -> T:
        """Current value. Re-evaluates only when a tracked path changed."""
        if self._last_version != self._version:
            self._value = self._fn(self._state)
            self._last_version = self._version
        return self._value

    def _on_mutation(self, record: MutationRecord) -> None:
        if record.target is not self._live_state:
            return
        if record.key in self._deps:
            self._version += 1

    def unsubscribe(self) -> None:
        """Stop listening for mutations. Safe to call more than once."""
        self._unsubscribe()

    def __repr__(self) -> str:
        name = getattr(self._fn, "__name__", "fn")
        if self._value is _UNSET:
            state = "unevaluated"
        elif self._last_version != self._version:
            state = "stale"
        else:
            state = f"cached={self._value!r}"
        return f"Computed({name}, {state})"


def create_computed(
    definitions: dict,
    live_state: dict,
    bus: MutationBus,
    fn: Callable[[PathAccessor], T],
) -> Computed[T]:
    """Factory for a Computed bound to one store's trees and bus.

    Usage:
        total = create_computed(defs, state, bus, lambda s: s.price * s.qty)
        total.get_value()
        total.unsubscribe()
    """
    return Computed(fn, definitions, live_state, bus)
