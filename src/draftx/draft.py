"""Drafts — per-dispatch transactional overlay over Live State.

Reads come from, in order: the draft's own writes, values already cloned into
the draft cache, a fresh shallow clone of Live State, then reducer definitions.
Writes only touch the overlay until commit() pushes its leaves through a Live
State view.

While open, a draft listens to the mutation bus. A Live State change at a path
the draft has not written is answered by pinning the old value in the cache, so
the draft keeps seeing the state as it was when it opened.

Use as a context manager; the bus subscription is released on every exit path:

    with Draft(definitions, live_state, bus) as draft:
        draft.view.count += 1
        draft.commit()
"""

from __future__ import annotations

import logging
from typing import Any

from draftx._paths import (
    MISSING,
    Handlers,
    Path,
    PathAccessor,
    as_entry,
    clone_of,
    is_container,
    make_path_string,
    nested,
    safe_read,
    safe_write,
    traverse,
)
from draftx.bus import MutationBus, MutationRecord
from draftx.reducer import InvalidAssignment, Reducer, iter_reducers
from draftx.views import create_state_view

logger = logging.getLogger("draftx.draft")


class _Absent:
    __slots__ = ()

    def __repr__(self) -> str:
        return "ABSENT"


# Cache tombstone: the path had no value when the draft opened.
_ABSENT = _Absent()


class Draft:
    """Overlay + cache + draft-local reducer clones for one dispatch."""
    def __init__(self, definitions: dict, live_state: dict, bus: MutationBus) -> None:
        self._definitions = definitions
        self._live_state = live_state
        self._bus = bus
        self._overlay: dict = {}
        self._cache: dict = {}
        self._store: dict = {}
        # cache containers the draft created itself and may write into, by id
        self._owned: dict[int, Any] = {}
        self._closed = False
        self._unsubscribe = bus.subscribe(self._on_mutation)
        self.view = PathAccessor(self._overlay, Handlers(self._read, self._write))

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Reads ---

    def _read(self, path: Path):
        def _get(key: str) -> Any:
            # 1. Our own writes.
            value = safe_read(self._overlay, path, key)
            if value is not MISSING:
                return value

            # 2. Already cloned or pinned during this draft.
            cached, settled = self._cache_lookup(path, key)
            if cached is not MISSING:
                return cached

            # 3. Live State, cloned so writers never touch its containers.
            if not settled:
                value = safe_read(self._live_state, path, key)
                if value is not MISSING:
                    return self._cache_clone(path, key, value)

            # 4 and 5. A derived reducer, cloned into the draft on first sight.
            has_derived, derived = self._derived_at(path, key)
            if has_derived:
                return derived
            raw = safe_read(self._definitions, path, key)
            if isinstance(raw, Reducer):
                reducer = self._clone_reducer(path, key, raw)
                return self._cache_clone(path, key, reducer.initial_value)

            # 6. Whatever raw definition is there.
            if raw is not MISSING:
                return self._cache_clone(path, key, raw)
            return None

        return _get

    def _derived_at(self, path: Path, key: str) -> tuple[bool, Any]:
        """Derived lookup for this draft: its own clones, then the definitions."""
        entry = as_entry(safe_read(self._store, path, key))
        if entry is None:
            raw = safe_read(self._definitions, path, key)
            if isinstance(raw, Reducer) and raw.is_derived:
                entry = self._clone_reducer(path, key, raw)
        if entry is not None and entry.is_derived:
            return True, entry.derived.get_value()
        return False, None

    def _clone_reducer(self, path: Path, key: str, raw: Reducer) -> Reducer:
        reducer = raw.clone(self._store, self._derived_at)
        safe_write(self._store, path, key, lambda _: reducer)
        return reducer

    # --- Cache ---
    #
    # The cache root is sparse: a key it lacks is read from Live State, which
    # has not changed there since the draft opened. Below the root every cached
    # container is a complete snapshot, so a key missing there was absent.

    def _own(self, obj: Any) -> Any:
        self._owned[id(obj)] = obj
        return obj

    def _owns(self, obj: Any) -> bool:
        return self._owned.get(id(obj)) is obj

    def _cache_lookup(self, path: Path, key: str) -> tuple[Any, bool]:
        """(value, settled). settled means the cache alone decides the read."""
        current = self._cache
        for step in path:
            nxt = current.get(step, MISSING)
            if nxt is MISSING:
                return MISSING, current is not self._cache
            if not is_container(nxt):
                return MISSING, True
            current = nxt
        value = current.get(key, MISSING)
        if value is _ABSENT:
            return MISSING, True
        return value, value is not MISSING or current is not self._cache

    def _cache_clone(self, path: Path, key: str, value: Any) -> Any:
        value = clone_of(value)
        self._cache_put(path, key, value, owned=True)
        return value

    def _cache_path(self, path: Path) -> dict:
        """Owned cache container at path, copying borrowed ones on the way down."""
        current = self._cache
        for step in path:
            nxt = current.get(step, MISSING)
            if nxt is MISSING and current is self._cache:
                nxt = self._live_state.get(step, MISSING)
            if not is_container(nxt):
                nxt = self._own({})
            elif not self._owns(nxt):
                nxt = self._own(dict(nxt))
            current[step] = nxt
            current = nxt
        return current

    def _cache_put(self, path: Path, key: str, value: Any, owned: bool = False) -> None:
        if owned and isinstance(value, (dict, list)):
            self._own(value)
        self._cache_path(path)[key] = value

    # --- Writes ---

    def _write(self, path: Path):
        def _set(key: str, value: Any) -> bool:
            if self._closed:
                raise RuntimeError("draft is closed")

            entry = as_entry(safe_read(self._store, path, key))
            if entry is None:
                entry = as_entry(safe_read(self._definitions, path, key))
            if entry is not None and entry.is_derived:
                raise InvalidAssignment(
                    f"cannot assign {make_path_string(path, key)!r}: computed value in a draft"
                )

            return safe_write(self._overlay, path, key, lambda _: clone_of(value))

        return _set

    # --- Isolation ---

    def _on_mutation(self, record: MutationRecord) -> None:
        if record.target is not self._live_state:
            return
        if safe_read(self._overlay, record.path, record.prop) is not MISSING:
            return
        self._pin(record.path, record.prop, record.old_value)

    def _pin(self, path: Path, key: str, old: Any) -> None:
        """Keep the value path/key had before a Live State change, once."""
        current = self._cache
        fresh = False
        for step in path:
            nxt = current.get(step, MISSING)
            if nxt is MISSING and current is self._cache:
                nxt = self._live_state.get(step, MISSING)
            if not is_container(nxt):
                # Absent or a plain value when pinned; nothing below it to keep.
                return
            if not self._owns(nxt):
                # Copied after the change, so only path/key is out of date.
                nxt = self._own(dict(nxt))
                fresh = True
            current[step] = nxt
            current = nxt

        if not fresh and (key in current or current is not self._cache):
            return
        if old is not MISSING:
            current[key] = old
        elif current is self._cache:
            current[key] = _ABSENT
        else:
            current.pop(key, None)

    # --- Lifecycle ---

    def commit(self) -> int:
        """Push every non-container leaf of the overlay into Live State.

        Dicts assigned wholesale are merged leaf by leaf; keys they lack are left
        alone in Live State. Returns the number of leaves visited. The overlay
        is emptied afterwards.
        """
        state, _ = create_state_view(self._definitions, self._live_state, self._bus, "commit")
        committed = 0

        def _visit(path: Path, key: str, value: Any) -> bool | None:
            nonlocal committed
            if is_container(value):
                return None
            nested(state, path).write(key, value)
            self._cache_put(path, key, value)
            committed += 1
            return False

        traverse(self._overlay, _visit)
        self._overlay.clear()
        logger.debug("committed %d value(s)", committed)
        return committed

    def rollback(self) -> None:
        """Drop uncommitted writes."""
        self._overlay.clear()

    def close(self) -> None:
        """Release the bus subscription and draft-local computeds. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._unsubscribe()
        for _, _, reducer in iter_reducers(self._store):
            reducer.release()

    def __enter__(self) -> Draft:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            logger.debug("draft rolled back after %s", exc_type.__name__)
            self.rollback()
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Draft({state})"
