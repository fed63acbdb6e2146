"""Mutation bus — synchronous fan-out of Live State writes.

Each Store owns (or is handed) a MutationBus. Every successful write through a
Live State view publishes one MutationRecord; computeds, open drafts and UI
bindings subscribe to learn about it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from draftx._paths import Path, make_path_string

Disposer = Callable[[], None]


@dataclass(frozen=True)
class MutationRecord:
    target: Any
    path: Path
    prop: str
    value: Any
    old_value: Any
    source: str = ""

    @property
    def key(self) -> str:
        """Dot-joined path, comparable against dependency sets."""
        return make_path_string(self.path, self.prop)


Subscriber = Callable[[MutationRecord], None]


class MutationBus:
    """Ordered set of subscriber callbacks."""

    def __init__(self) -> None:
        # dict as an insertion-ordered set
        self._subscribers: dict[Subscriber, None] = {}

    def subscribe(self, callback: Subscriber) -> Disposer:
        """Register a callback. Returns a function that removes it."""
        self._subscribers[callback] = None

        def _unsubscribe() -> None:
            self._subscribers.pop(callback, None)

        return _unsubscribe

    def unsubscribe(self, callback: Subscriber) -> None:
        self._subscribers.pop(callback, None)

    def publish(self, record: MutationRecord) -> None:
        """Call every current subscriber with record.

        Subscribers added during the fan-out wait for the next publish; ones
        removed before their turn are skipped.
        """
        for callback in list(self._subscribers):
            if callback in self._subscribers:
                callback(record)

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, callback: object) -> bool:
        return callback in self._subscribers
