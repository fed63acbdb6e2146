"""Textual integration for draftx. Opt-in — requires textual.

bind() keeps a render function in step with a Store: each render reads through
a fresh Binding, and the first mutation touching something it read triggers
exactly one re-render. Guarding (pause, app not running), NoMatches handling
and cross-thread marshaling live here, not at call sites.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

logger = logging.getLogger("draftx.textual")

# Keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend re-renders during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


class BindHandle:
    """Disposable handle for a bind() loop."""

    __slots__ = ("binding", "renders", "_disposed")

    def __init__(self):
        self.binding = None
        self.renders = 0
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def dispose(self) -> None:
        self._disposed = True
        if self.binding is not None:
            self.binding.dispose()


def bind(app, store, name, render) -> BindHandle:
    """Call render(state) now and once after each relevant mutation.

    render receives a Live State view; whatever it reads decides what the
    next re-render waits for. Mutations while the app is paused or not
    running are skipped but the same paths stay watched.
    """
    handle = BindHandle()
    _main = threading.get_ident()

    def _render():
        if handle.disposed:
            return
        handle.binding = store.bind(name, _on_change)
        handle.renders += 1
        try:
            render(handle.binding.state)
        except NoMatches:
            logger.debug("%s: widget not mounted, render skipped", name)

    def _on_change():
        if handle.disposed:
            return
        if not is_safe(app):
            handle.binding = handle.binding.renew(store, name, _on_change)
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_render)
        else:
            _render()

    _render()
    return handle
