"""Bindings — one-shot rebind-on-change subscriptions for UI layers.

A Binding hands out a fresh Live State view. Whatever the consumer reads
through it becomes the binding's dependency set. The first published mutation
that touches one of those paths calls on_change() exactly once and detaches the
binding; the consumer re-renders with a new Binding.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from draftx.bus import MutationRecord
from draftx.views import create_state_view

if TYPE_CHECKING:
    from draftx.store import Store


class Binding:
    """Live State view that fires on_change once for its first relevant mutation."""

    __slots__ = ("state", "dispatch", "_deps", "_live_state", "_on_change", "_unsubscribe", "_fired")

    def __init__(self, store: Store, name: str, on_change: Callable[[], None]) -> None:
        self.state, self._deps = create_state_view(
            store.definitions, store.live_state, store.bus, name
        )
        self.dispatch = store.dispatch
        self._live_state = store.live_state
        self._on_change = on_change
        self._fired = False
        self._unsubscribe = store.bus.subscribe(self._on_mutation)

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def dependencies(self) -> frozenset[str]:
        return frozenset(self._deps)

    def _on_mutation(self, record: MutationRecord) -> None:
        if record.target is not self._live_state:
            return
        if record.key in self._deps:
            self.dispose()
            self._fired = True
            self._on_change()

    def renew(self, store: Store, name: str, on_change: Callable[[], None]) -> Binding:
        """A new binding watching the same paths, for consumers that skip a render."""
        binding = Binding(store, name, on_change)
        binding._deps.update(self._deps)
        return binding

    def dispose(self) -> None:
        """Detach from the bus. Safe to call more than once."""
        self._unsubscribe()

    def __repr__(self) -> str:
        state = "fired" if self._fired else f"watching {len(self._deps)} path(s)"
        return f"Binding({state})"
