"""Store — definitions, live state, reducers and the dispatch pipeline.

    store = Store()

    def count_actions(on, effect):
        @on.increment
        def _(n):
            def apply(draft):
                draft.count += n
            return apply

    store.define({"count": store.reducer(0, count_actions)})
    store.dispatch.increment(5)
    store.get("count")  # 5

Each dispatch opens a Draft, runs every reducer's handler against it, commits
the draft into Live State, and releases the draft whether or not a handler
raised.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable, Mapping

from draftx._paths import PathAccessor, safe_read
from draftx.binding import Binding
from draftx.bus import MutationBus
from draftx.computed import Computed, create_computed
from draftx.draft import Draft
from draftx.reducer import ActionHandler, Reducer, iter_reducers
from draftx.views import create_state_view, create_store_view

logger = logging.getLogger("draftx.store")

Definitions = Mapping[str, Any]


def _effect(*args, **kwargs) -> None:
    """Reserved for side-effect scheduling."""


def _reject_awaitable(value: Any, action_type: str) -> None:
    if inspect.isawaitable(value):
        if inspect.iscoroutine(value):
            value.close()
        raise TypeError(f"action {action_type!r}: asynchronous handlers are not supported")


class ActionRegistry:
    """The `on` object handed to reducer handlers during one dispatch.

    on.<type>(fn) runs fn(*args)(draft) when <type> is the action being
    dispatched, and does nothing otherwise. Returns fn, so it also works as
    a decorator.
    """

    __slots__ = ("_action_type", "_args", "_draft")

    def __init__(self, action_type: str, args: tuple, draft: PathAccessor) -> None:
        self._action_type = action_type
        self._args = args
        self._draft = draft

    def register(self, action_type: str, fn: Callable[..., Callable[[PathAccessor], None]]):
        if not callable(fn):
            raise TypeError(f"handler for action {action_type!r} must be callable, got {fn!r}")
        if action_type != self._action_type:
            return fn

        apply = fn(*self._args)
        _reject_awaitable(apply, action_type)
        if not callable(apply):
            raise TypeError(
                f"handler for action {action_type!r} must return a function of the draft, got {apply!r}"
            )
        _reject_awaitable(apply(self._draft), action_type)
        return fn

    def __getattr__(self, action_type: str):
        if action_type.startswith("_"):
            raise AttributeError(action_type)
        return functools.partial(self.register, action_type)

    def __getitem__(self, action_type: str):
        return functools.partial(self.register, action_type)


class Dispatcher:
    """store.dispatch.<type>(*payload) / store.dispatch["<type>"](*payload)"""

    __slots__ = ("_dispatch",)

    def __init__(self, dispatch: Callable[[str, tuple], None]) -> None:
        self._dispatch = dispatch

    def __getattr__(self, action_type: str) -> Callable[..., None]:
        if action_type.startswith("_"):
            raise AttributeError(action_type)
        return self[action_type]

    def __getitem__(self, action_type: str) -> Callable[..., None]:
        def _send(*payload: Any) -> None:
            self._dispatch(action_type, payload)

        _send.__name__ = action_type
        return _send


class Store:
    """Definitions tree + Live State tree sharing one mutation bus."""

    def __init__(
        self,
        definitions: Definitions | Callable[[Store], Definitions] | None = None,
        *,
        bus: MutationBus | None = None,
    ) -> None:
        self.bus = bus if bus is not None else MutationBus()
        self._definitions: dict = {}
        self._state: dict = {}
        self.view = create_store_view(self._definitions, self._state)
        self.dispatch = Dispatcher(self._dispatch)
        if definitions is not None:
            self.define(definitions(self) if callable(definitions) else definitions)

    @property
    def definitions(self) -> dict:
        """Raw definitions tree."""
        return self._definitions

    @property
    def live_state(self) -> dict:
        """Raw Live State tree. Write through create_state() views, not directly."""
        return self._state

    # --- Construction ---

    def reducer(self, init: Any, handler: ActionHandler | None = None) -> Reducer:
        """A reducer bound to this store. Callable init makes it derived."""
        return Reducer(init, handler, self._definitions, self._state, self.bus)

    def define(self, definitions: Definitions) -> None:
        """Write a definitions mapping through the store view."""
        for key, value in definitions.items():
            self.view.write(key, value)

    def reconcile(self, definitions: Definitions | Callable[[Store], Definitions]) -> bool:
        """Schema evolution: add definitions, keep current Live State values.

        Reducers replaced by the new definitions are released. A failing
        definitions factory is logged and leaves the store untouched.
        """
        try:
            new = definitions(self) if callable(definitions) else definitions
        except Exception:
            logger.exception("Failed to build definitions during reconcile")
            return False

        new_keys = [key for key in new if key not in self._definitions]
        before = list(iter_reducers(self._definitions))
        self.define(new)

        replaced = 0
        for path, key, reducer in before:
            if safe_read(self._definitions, path, key) is not reducer:
                reducer.release()
                replaced += 1
        logger.info("Reconciled: %d new keys, %d reducers replaced", len(new_keys), replaced)
        return True

    # --- Reading ---

    def create_state(self, name: str = "") -> tuple[PathAccessor, set[str]]:
        """Live State view plus the dependency set its reads record."""
        return create_state_view(self._definitions, self._state, self.bus, name)

    def get(self, *path: str) -> Any:
        state, _ = self.create_state("get")
        return state.at(*path)

    def entry(self, *path: str) -> Any:
        """The raw definitions entry at path (a Reducer, a value, or None)."""
        if not path:
            raise ValueError("entry() requires a path")
        *parent, key = path
        return safe_read(self._definitions, tuple(parent), key, None)

    def computed(self, fn: Callable[[PathAccessor], Any]) -> Computed:
        return create_computed(self._definitions, self._state, self.bus, fn)

    def bind(self, name: str, on_change: Callable[[], None]) -> Binding:
        """One-shot binding: on_change fires once for the first relevant mutation."""
        return Binding(self, name, on_change)

    # --- Dispatch ---

    def open_draft(self) -> Draft:
        return Draft(self._definitions, self._state, self.bus)

    def _dispatch(self, action_type: str, args: tuple) -> None:
        logger.debug("[dispatch] %s %r", action_type, args)
        with self.open_draft() as draft:
            on = ActionRegistry(action_type, args, draft.view)
            for _, _, reducer in iter_reducers(self._definitions):
                reducer.handler(on, _effect)
            draft.commit()

    def dispose(self) -> None:
        """Release every derived reducer's computed."""
        for _, _, reducer in iter_reducers(self._definitions):
            reducer.release()

    def __repr__(self) -> str:
        return f"Store(keys={list(self._definitions)!r})"
