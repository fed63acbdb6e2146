"""Path accessor — structural interception of nested reads and writes.

A PathAccessor wraps a nested dict tree. Every read or write of a field at any
depth is routed through a pair of handlers keyed by the accumulated path, so
callers see an ordinary nested object while the owner decides where values
actually come from and where they go.

Also home to the plain structural helpers shared by the views and the draft:
safe_read/safe_write walk a raw tree without interception.
"""

from __future__ import annotations

from typing import Any, Callable, NamedTuple

Path = tuple[str, ...]


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


# Absence marker. None is a legitimate stored value.
MISSING: Any = _Missing()


class StoreEntry:
    """A definitions-tree node that is not a raw value.

    Subclasses carry either `derived` (a computed) or `initial_value`, never both.
    """

    derived: Any = None
    initial_value: Any = MISSING

    @property
    def is_derived(self) -> bool:
        return self.derived is not None


def as_entry(value: Any) -> StoreEntry | None:
    return value if isinstance(value, StoreEntry) else None


class Handlers(NamedTuple):
    """read(path)(key) -> value, write(path)(key, value) -> bool"""

    read: Callable[[Path], Callable[[str], Any]]
    write: Callable[[Path], Callable[[str, Any], bool]]


def make_path_string(path: Path, key: str) -> str:
    """Canonical dependency key: fields joined with dots."""
    return ".".join((*path, key))


def is_container(value: object) -> bool:
    return isinstance(value, dict)


def clone_of(value: Any) -> Any:
    """Shallow copy of lists and dicts. Everything else passes through."""
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return dict(value)
    return value


def value_at(target: Any, path: Path) -> Any:
    """Walk path from target. MISSING if any step is absent."""
    current = target
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return MISSING
        current = current[key]
    return current


def safe_read(target: Any, path: Path, key: str, default: Any = MISSING) -> Any:
    current = value_at(target, path)
    if not isinstance(current, dict):
        return default
    return current.get(key, default)


def safe_write(target: dict, path: Path, key: str, value_fn: Callable[[Any], Any]) -> bool:
    """Write value_fn(existing) at path/key, creating missing containers.

    Fails (returns False) when an intermediate exists but is not a container.
    """
    current = target
    for step in path:
        nxt = current.get(step, MISSING)
        if nxt is MISSING or nxt is None:
            nxt = {}
            current[step] = nxt
        elif not isinstance(nxt, dict):
            return False
        current = nxt
    current[key] = value_fn(current.get(key, MISSING))
    return True


def traverse(
    obj: Any,
    callback: Callable[[Path, str, Any], bool | None],
    path: Path = (),
) -> None:
    """Depth-first walk over nested dicts.

    callback(path, key, value) is called for every entry; returning False stops
    descent below that entry.
    """
    if not isinstance(obj, dict):
        return
    for key, value in list(obj.items()):
        if callback(path, key, value) is not False and isinstance(value, dict):
            traverse(value, callback, (*path, key))


class PathAccessor:
    """Path-aware view over a nested tree.

    read()/write() are the explicit interface; attribute and item access are
    sugar for them. Dict values come back as further accessors that keep
    accumulating the path, so `acc.a.b.c = 1` reaches write(("a", "b"))("c", 1).
    """

    __slots__ = ("_target", "_handlers", "_path")

    def __init__(self, target: Any, handlers: Handlers, path: Path = ()) -> None:
        object.__setattr__(self, "_target", target)
        object.__setattr__(self, "_handlers", handlers)
        object.__setattr__(self, "_path", tuple(path))

    def read(self, key: str) -> Any:
        value = self._handlers.read(self._path)(key)
        if is_container(value):
            return PathAccessor(self._target, self._handlers, (*self._path, key))
        return value

    def write(self, key: str, value: Any) -> bool:
        return self._handlers.write(self._path)(key, unwrap_value(value))

    def at(self, *path: str) -> Any:
        """Read a nested path in one call: acc.at("a", "b") == acc.a.b"""
        current: Any = self
        for key in path:
            if not isinstance(current, PathAccessor):
                return None
            current = current.read(key)
        return current

    def _assign(self, key: str, value: Any) -> None:
        if not self.write(key, value):
            raise TypeError(f"cannot assign {make_path_string(self._path, key)!r}")

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.read(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            raise AttributeError(f"cannot set private attribute {name!r} on an accessor")
        self._assign(name, value)

    def __getitem__(self, key: str) -> Any:
        return self.read(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._assign(key, value)

    def __repr__(self) -> str:
        return f"PathAccessor({'.'.join(self._path) or '<root>'})"


def unwrap(accessor: PathAccessor) -> Any:
    """The raw tree an accessor was created over."""
    return accessor._target


def accessor_path(accessor: PathAccessor) -> Path:
    return accessor._path


def nested(accessor: PathAccessor, path: Path) -> PathAccessor:
    """Accessor positioned further down, without reading the steps in between."""
    return PathAccessor(accessor._target, accessor._handlers, (*accessor._path, *path))


def unwrap_value(value: Any) -> Any:
    """Resolve an accessor being assigned somewhere into the raw dict it stands for."""
    if not isinstance(value, PathAccessor):
        return value
    if not value._path:
        return value._target
    *parent, key = value._path
    return value._handlers.read(tuple(parent))(key)
