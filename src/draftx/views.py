"""Store and Live State views.

The Store view is an accessor over the definitions tree: reads resolve reducer
entries, writes record definitions and seed Live State once. The Live State view
is an accessor over current data: reads prefer a derived value from the store
and otherwise record the path as a dependency; writes de-duplicate and publish
to the mutation bus.

All writes to Live State go through create_state_view's write handler.
"""

from __future__ import annotations

from typing import Any, Callable

from draftx._paths import (
    MISSING,
    Handlers,
    Path,
    PathAccessor,
    StoreEntry,
    as_entry,
    clone_of,
    is_container,
    make_path_string,
    safe_read,
    safe_write,
    value_at,
)
from draftx.bus import MutationBus, MutationRecord

DerivedLookup = Callable[[Path, str], tuple[bool, Any]]


def derived_value_at(definitions: dict, path: Path, key: str) -> tuple[bool, Any]:
    """(True, value) if a derived reducer sits at path/key, else (False, None)."""
    entry = as_entry(safe_read(definitions, path, key))
    if entry is not None and entry.is_derived:
        return True, entry.derived.get_value()
    return False, None


def _entry_value(entry: StoreEntry) -> Any:
    return entry.derived.get_value() if entry.is_derived else entry.initial_value


def read_definition(definitions: dict, path: Path, key: str) -> Any:
    """Resolved definitions value at path/key.

    A reducer met on the way stands for its value, so paths below a value-form
    reducer read from its initial value and paths below a derived one from its
    current result.
    """
    current: Any = definitions
    for depth, step in enumerate(path):
        entry = as_entry(current)
        if entry is not None:
            return safe_read(_entry_value(entry), path[depth:], key)
        if not isinstance(current, dict) or step not in current:
            return MISSING
        current = current[step]

    entry = as_entry(current)
    if entry is not None:
        return safe_read(_entry_value(entry), (), key)
    if not isinstance(current, dict):
        return MISSING
    value = current.get(key, MISSING)
    entry = as_entry(value)
    return _entry_value(entry) if entry is not None else value


def resolve_initial(value: Any) -> Any:
    """The value Live State should be seeded with for a definitions entry.

    MISSING for derived reducers, which never live in Live State.
    """
    entry = as_entry(value)
    if entry is None:
        return value
    return MISSING if entry.is_derived else entry.initial_value


def create_store_view(definitions: dict, live_state: dict) -> PathAccessor:
    def read(path: Path):
        def _read(key: str) -> Any:
            value = read_definition(definitions, path, key)
            # Absent reads give an empty container so a.b.c never fails midway.
            if value is MISSING or value is None:
                return {}
            return value

        return _read

    def write(path: Path):
        def _write(key: str, value: Any) -> bool:
            if is_container(value):
                # Entry by entry, so Live State gets its own containers.
                ok = safe_write(definitions, path, key, _ensure_container)
                safe_write(live_state, path, key, _ensure_container_or_keep)
                nested = write((*path, key))
                results = [nested(k, v) for k, v in value.items()]
                return ok and all(results)

            result = safe_write(definitions, path, key, lambda _: value)
            seed = resolve_initial(value)
            if seed is MISSING:
                return result
            # Seed once; a later definition never overwrites current data.
            safe_write(
                live_state, path, key,
                lambda exist: clone_of(seed) if exist is MISSING else exist,
            )
            return result

        return _write

    return PathAccessor(definitions, Handlers(read, write))


def _ensure_container(exist: Any) -> Any:
    return exist if is_container(exist) else {}


def _ensure_container_or_keep(exist: Any) -> Any:
    return {} if exist is MISSING else exist


def _first_created(target: dict, path: Path) -> tuple[int, Any] | None:
    """(depth, old value) of the first step safe_write would have to create."""
    current: Any = target
    for depth, step in enumerate(path):
        nxt = current.get(step, MISSING)
        if nxt is MISSING or nxt is None:
            return depth, nxt
        if not isinstance(nxt, dict):
            return None
        current = nxt
    return None


def create_state_view(
    definitions: dict,
    live_state: dict,
    bus: MutationBus,
    name: str = "",
    derived_lookup: DerivedLookup | None = None,
) -> tuple[PathAccessor, set[str]]:
    """Accessor over Live State plus the dependency set its reads fill.

    name identifies the reader in published mutation records. derived_lookup
    replaces the plain definitions lookup for derived values (drafts use it to
    resolve against their own reducer clones).
    """
    deps: set[str] = set()
    if derived_lookup is None:
        def derived_lookup(path: Path, key: str) -> tuple[bool, Any]:
            return derived_value_at(definitions, path, key)

    def read(path: Path):
        def _read(key: str) -> Any:
            # 1. A derived reducer wins over anything stored.
            has_derived, derived = derived_lookup(path, key)
            if has_derived:
                return derived

            # 2. Track the path for invalidation.
            deps.add(make_path_string(path, key))

            # 3. Current data.
            return safe_read(live_state, path, key, None)

        return _read

    def write(path: Path):
        def _write(key: str, value: Any) -> bool:
            existing = safe_read(live_state, path, key)
            if existing is value or existing == value:
                return True

            created = _first_created(live_state, path)
            if not safe_write(live_state, path, key, lambda _: value):
                return False
            if created is not None:
                # The outermost container this write had to create is a change too.
                depth, old = created
                bus.publish(MutationRecord(
                    live_state, path[:depth], path[depth],
                    value_at(live_state, path[:depth + 1]), old, name,
                ))
            bus.publish(MutationRecord(live_state, path, key, value, existing, name))
            return True

        return _write

    return PathAccessor(live_state, Handlers(read, write)), deps
