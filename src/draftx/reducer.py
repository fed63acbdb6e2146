"""Reducers — definition nodes pairing a value with action handling.

A Reducer sits in the definitions tree. Its init is either a plain initial
value (value form) or a function of the state (derived form, backed by a
Computed). Its handler registers per-action callbacks:

    def count_actions(on, effect):
        @on.increment
        def _(n):
            def apply(draft):
                draft.count += n
            return apply
"""

from __future__ import annotations

from typing import Any, Callable, Iterator

from draftx._paths import Path, StoreEntry, traverse
from draftx.bus import MutationBus
from draftx.computed import Computed
from draftx.views import DerivedLookup

ActionHandler = Callable[[Any, Callable[..., None]], None]


class InvalidAssignment(TypeError):
    """Write through a draft to a path backed by a derived reducer."""


def _noop(*args, **kwargs) -> None:
    pass


class Reducer(StoreEntry):
    """Value-form or derived-form definition entry."""

    def __init__(
        self,
        init: Any,
        handler: ActionHandler | None,
        definitions: dict,
        live_state: dict,
        bus: MutationBus,
        derived_lookup: DerivedLookup | None = None,
    ) -> None:
        self.init = init
        self.handler = handler or _noop
        self.definitions = definitions
        self.live_state = live_state
        self.bus = bus
        if callable(init):
            self.derived = Computed(init, definitions, live_state, bus, derived_lookup)
        else:
            self.initial_value = init

    def clone(self, definitions: dict, derived_lookup: DerivedLookup | None = None) -> Reducer:
        """Same init and handler, rebound to another definitions tree.

        Live State and bus are kept; a derived clone gets its own Computed,
        resolving other derived values through derived_lookup when given.
        """
        return Reducer(
            self.init, self.handler, definitions, self.live_state, self.bus, derived_lookup
        )

    def release(self) -> None:
        if self.derived is not None:
            self.derived.unsubscribe()

    def __repr__(self) -> str:
        if self.is_derived:
            return f"Reducer(derived={self.derived!r})"
        return f"Reducer({self.initial_value!r})"


def iter_reducers(definitions: dict) -> Iterator[tuple[Path, str, Reducer]]:
    """Every Reducer in a definitions tree, without descending into them."""
    found: list[tuple[Path, str, Reducer]] = []

    def _visit(path: Path, key: str, value: Any) -> bool | None:
        if isinstance(value, Reducer):
            found.append((path, key, value))
            return False
        return None

    traverse(definitions, _visit)
    return iter(found)
