"""Tests for Computed values."""

from draftx import Computed, MutationBus, Store, create_computed


def _counting(fn):
    calls = []

    def wrapper(state):
        calls.append(1)
        return fn(state)

    return wrapper, calls


class TestComputed:
    def test_lazy_eval(self):
        store = Store({"n": 5})
        fn, calls = _counting(lambda s: s.n * 2)
        c = store.computed(fn)
        assert calls == []
        assert c.get_value() == 10
        assert len(calls) == 1

    def test_caches_until_tracked_change(self):
        store = Store({"n": 5})
        fn, calls = _counting(lambda s: s.n * 2)
        c = store.computed(fn)
        c.get_value()
        c.get_value()
        assert len(calls) == 1

    def test_recomputes_on_tracked_mutation(self):
        store = Store({"price": 2, "qty": 3})
        fn, calls = _counting(lambda s: s.price * s.qty)
        c = store.computed(fn)
        assert c.get_value() == 6
        state, _ = store.create_state("test")
        state.price = 5
        assert c.version == 1
        assert c.get_value() == 15
        assert len(calls) == 2

    def test_untracked_mutation_keeps_cache(self):
        store = Store({"price": 2, "qty": 3, "other": 0})
        fn, calls = _counting(lambda s: s.price * s.qty)
        c = store.computed(fn)
        c.get_value()
        state, _ = store.create_state("test")
        state.other = 1
        assert c.version == 0
        assert c.get_value() == 6
        assert len(calls) == 1

    def test_nested_paths(self):
        store = Store({"cart": {"total": 10}})
        c = store.computed(lambda s: s.cart.total + 1)
        assert c.get_value() == 11
        assert c.dependencies == {"cart", "cart.total"}
        state, _ = store.create_state("test")
        state.cart.total = 20
        assert c.get_value() == 21

    def test_dependencies_only_grow(self):
        store = Store({"flag": True, "a": 1, "b": 2})
        fn, calls = _counting(lambda s: s.a if s.flag else s.b)
        c = store.computed(fn)
        assert c.get_value() == 1
        state, _ = store.create_state("test")
        state.flag = False
        assert c.get_value() == 2
        assert c.dependencies == {"flag", "a", "b"}
        # a is no longer read, but still invalidates
        state.a = 10
        assert c.get_value() == 2
        assert len(calls) == 3

    def test_unsubscribe(self):
        store = Store({"n": 1})
        c = store.computed(lambda s: s.n)
        c.get_value()
        c.unsubscribe()
        c.unsubscribe()  # idempotent
        state, _ = store.create_state("test")
        state.n = 2
        assert c.get_value() == 1  # no longer invalidated

    def test_ignores_other_stores(self):
        bus = MutationBus()
        a = Store({"n": 1}, bus=bus)
        b = Store({"n": 1}, bus=bus)
        c = a.computed(lambda s: s.n)
        c.get_value()
        state, _ = b.create_state("other")
        state.n = 2
        assert c.version == 0

    def test_factory(self):
        definitions, live = {}, {"x": 3}
        c = create_computed(definitions, live, MutationBus(), lambda s: s.x + 1)
        assert isinstance(c, Computed)
        assert c.get_value() == 4

    def test_repr(self):
        store = Store({"n": 1})

        def double(state):
            return state.n * 2

        c = store.computed(double)
        assert repr(c) == "Computed(double, unevaluated)"
        c.get_value()
        assert repr(c) == "Computed(double, cached=2)"
