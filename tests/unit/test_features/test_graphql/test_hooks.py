"""Tests for the extension-point bus."""

from __future__ import annotations

import pytest

from graph_service.features.graphql.hooks import DEFAULT_PRIORITY, ExtensionPointBus


@pytest.mark.unit
class TestFire:
    """Accumulator threading through fire()."""

    def test_runs_in_priority_then_registration_order(self, bus: ExtensionPointBus) -> None:
        bus.register("point", lambda acc: [*acc, "20"], priority=20)
        bus.register("point", lambda acc: [*acc, "10-first"], priority=10)
        bus.register("point", lambda acc: [*acc, "5"], priority=5)
        bus.register("point", lambda acc: [*acc, "10-second"], priority=10)

        assert bus.fire("point", []) == ["5", "10-first", "10-second", "20"]

    def test_order_is_stable_across_repeated_fires(self, bus: ExtensionPointBus) -> None:
        for priority in (20, 10, 5, 10):
            bus.register("point", lambda acc, p=priority: [*acc, p], priority=priority)

        first = bus.fire("point", [])
        assert first == [5, 10, 10, 20]
        assert bus.fire("point", []) == first

    def test_returns_value_unchanged_without_callbacks(self, bus: ExtensionPointBus) -> None:
        value = object()
        assert bus.fire("nothing", value) is value

    def test_pass_through_callback_keeps_value(self, bus: ExtensionPointBus) -> None:
        bus.register("point", lambda acc: acc)
        bus.register("point", lambda acc: acc + 1)

        assert bus.fire("point", 1) == 2

    def test_accepted_args_limits_extra_arguments(self, bus: ExtensionPointBus) -> None:
        received = []

        def one(acc):
            received.append(("one",))
            return acc

        def three(acc, a, b):
            received.append(("three", a, b))
            return acc

        bus.register("point", one, accepted_args=1)
        bus.register("point", three, accepted_args=3)
        bus.fire("point", None, "a", "b", "c")

        assert received == [("one",), ("three", "a", "b")]

    def test_decorator_forwards_every_argument(self, bus: ExtensionPointBus) -> None:
        @bus.on("point", priority=1)
        def collect(acc, *args):
            return [*acc, *args]

        assert bus.fire("point", [], 1, 2) == [1, 2]
        assert bus.callbacks("point")[0].callback is collect

    def test_exception_aborts_chain_and_propagates(self, bus: ExtensionPointBus) -> None:
        calls = []

        def fail(acc):
            raise RuntimeError("boom")

        def later(acc):
            calls.append("later")
            return acc

        bus.register("point", fail, priority=1)
        bus.register("point", later, priority=2)

        with pytest.raises(RuntimeError, match="boom"):
            bus.fire("point", None)
        assert calls == []


@pytest.mark.unit
class TestNotifyAndRegistry:
    """notify() and registry inspection."""

    def test_notify_ignores_return_values(self, bus: ExtensionPointBus) -> None:
        seen = []
        bus.register("done", lambda artifact: seen.append(artifact) or "ignored")

        assert bus.notify("done", "schema") is None
        assert seen == ["schema"]

    def test_default_priority(self, bus: ExtensionPointBus) -> None:
        entry = bus.register("point", lambda acc: acc)
        assert entry.priority == DEFAULT_PRIORITY == 10

    def test_negative_accepted_args_rejected(self, bus: ExtensionPointBus) -> None:
        with pytest.raises(ValueError):
            bus.register("point", lambda acc: acc, accepted_args=-1)

    def test_points_and_has(self, bus: ExtensionPointBus) -> None:
        assert not bus.has("b")
        bus.register("b", lambda acc: acc)
        bus.register("a", lambda acc: acc)

        assert bus.has("b")
        assert bus.points == ["a", "b"]

    def test_callbacks_returns_snapshot(self, bus: ExtensionPointBus) -> None:
        bus.register("point", lambda acc: acc)
        snapshot = bus.callbacks("point")
        snapshot.clear()

        assert len(bus.callbacks("point")) == 1
