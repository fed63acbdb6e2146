"""Tests for MutationBus and MutationRecord."""

import dataclasses

import pytest

from draftx import MutationBus, MutationRecord


def _record(prop="x"):
    return MutationRecord({}, ("a",), prop, 1, 0, "test")


class TestMutationRecord:
    def test_key(self):
        assert _record("b").key == "a.b"

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            _record().value = 2


class TestMutationBus:
    def test_publish_in_subscription_order(self):
        bus = MutationBus()
        log = []
        bus.subscribe(lambda r: log.append(("first", r.prop)))
        bus.subscribe(lambda r: log.append(("second", r.prop)))
        bus.publish(_record())
        assert log == [("first", "x"), ("second", "x")]

    def test_unsubscribe(self):
        bus = MutationBus()
        log = []
        dispose = bus.subscribe(log.append)
        dispose()
        bus.publish(_record())
        assert log == []
        assert len(bus) == 0

    def test_unsubscribe_idempotent(self):
        bus = MutationBus()
        cb = lambda r: None
        dispose = bus.subscribe(cb)
        dispose()
        dispose()
        bus.unsubscribe(cb)
        assert cb not in bus

    def test_added_during_publish_waits(self):
        bus = MutationBus()
        late = []

        def first(record):
            bus.subscribe(late.append)

        bus.subscribe(first)
        bus.publish(_record("one"))
        assert late == []
        bus.publish(_record("two"))
        assert [r.prop for r in late] == ["two"]

    def test_removed_during_publish_skipped(self):
        bus = MutationBus()
        log = []
        dispose_second = None

        def first(record):
            log.append("first")
            dispose_second()

        bus.subscribe(first)
        dispose_second = bus.subscribe(lambda r: log.append("second"))
        bus.publish(_record())
        assert log == ["first"]

    def test_subscriber_errors_propagate(self):
        bus = MutationBus()

        def boom(record):
            raise RuntimeError("boom")

        bus.subscribe(boom)
        with pytest.raises(RuntimeError):
            bus.publish(_record())

    def test_same_callback_once(self):
        bus = MutationBus()
        log = []
        bus.subscribe(log.append)
        bus.subscribe(log.append)
        bus.publish(_record())
        assert len(log) == 1
