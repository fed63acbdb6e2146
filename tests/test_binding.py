"""Tests for one-shot Bindings."""

from draftx import Binding, Store


def _store():
    def counter(on, effect):
        on.increment(lambda n: lambda draft: setattr(draft, "count", draft.count + n))

    return Store(lambda s: {"count": s.reducer(0, counter), "other": 0})


class TestBinding:
    def test_fires_once_for_relevant_mutation(self):
        s = _store()
        log = []
        b = s.bind("view", lambda: log.append("changed"))
        assert b.state.count == 0
        s.dispatch.increment(1)
        assert log == ["changed"]
        assert b.fired
        s.dispatch.increment(1)
        assert log == ["changed"]  # one-shot

    def test_detaches_after_firing(self):
        s = _store()
        before = len(s.bus)
        b = s.bind("view", lambda: None)
        b.state.count
        assert len(s.bus) == before + 1
        s.dispatch.increment(1)
        assert len(s.bus) == before

    def test_ignores_unread_paths(self):
        s = _store()
        log = []
        b = s.bind("view", lambda: log.append("changed"))
        b.state.count
        state, _ = s.create_state("outside")
        state.other = 5
        assert log == []
        assert not b.fired

    def test_nothing_read_never_fires(self):
        s = _store()
        log = []
        s.bind("view", lambda: log.append("changed"))
        s.dispatch.increment(1)
        assert log == []

    def test_dispose(self):
        s = _store()
        log = []
        b = s.bind("view", lambda: log.append("changed"))
        b.state.count
        b.dispose()
        b.dispose()
        s.dispatch.increment(1)
        assert log == []

    def test_renew_keeps_dependencies(self):
        s = _store()
        log = []
        b = s.bind("view", lambda: None)
        b.state.count
        renewed = b.renew(s, "view", lambda: log.append("renewed"))
        b.dispose()
        assert renewed.dependencies == {"count"}
        s.dispatch.increment(1)
        assert log == ["renewed"]

    def test_dispatch_attached(self):
        s = _store()
        b = s.bind("view", lambda: None)
        b.dispatch.increment(2)
        assert b.state.count == 2

    def test_rebind_cycle(self):
        s = _store()
        seen = []

        def render():
            binding = s.bind("view", render)
            seen.append(binding.state.count)

        render()
        s.dispatch.increment(1)
        s.dispatch.increment(2)
        assert seen == [0, 1, 3]

    def test_is_binding(self):
        assert isinstance(_store().bind("view", lambda: None), Binding)
