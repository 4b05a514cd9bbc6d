"""Unit tests — Watcher state machine and dispatch."""

from __future__ import annotations

import asyncio

import pytest

from sysfs_gpio.exceptions import GpioIOError
from sysfs_gpio.notifier import MockNotifier
from sysfs_gpio.paths import SysfsGpioPath
from sysfs_gpio.types import Direction
from sysfs_gpio.value_io import ValueIO
from sysfs_gpio.watcher import Watcher, WatchState


@pytest.fixture
def value_io(fake_sysfs):
    fake_sysfs.add_pin(18)
    io = ValueIO(SysfsGpioPath(18, fake_sysfs.root), Direction.IN)
    yield io
    io.close()


@pytest.mark.unit
class TestWatcherStates:
    def test_first_add_arms(self, value_io, notifier: MockNotifier) -> None:
        watcher = Watcher(value_io, notifier)
        assert watcher.state is WatchState.IDLE
        watcher.add(lambda err, value: None)
        assert watcher.state is WatchState.ARMED
        assert notifier.registered == [value_io.fileno()]

    def test_shared_subscription(self, value_io, notifier: MockNotifier) -> None:
        watcher = Watcher(value_io, notifier)
        watcher.add(lambda err, value: None)
        watcher.add(lambda err, value: None)
        assert len(notifier.registered) == 1

    def test_last_remove_disarms(self, value_io, notifier: MockNotifier) -> None:
        watcher = Watcher(value_io, notifier)
        first = watcher.add(lambda err, value: None)
        second = watcher.add(lambda err, value: None)
        watcher.remove(first)
        assert watcher.state is WatchState.ARMED
        watcher.remove(second)
        assert watcher.state is WatchState.IDLE
        assert notifier.active == []
        # The descriptor itself stays open; ValueIO owns it.
        assert value_io._fd is not None

    def test_remove_unknown_is_noop(self, value_io, notifier: MockNotifier) -> None:
        watcher = Watcher(value_io, notifier)
        watcher.add(lambda err, value: None)
        watcher.remove(lambda err, value: None)
        assert watcher.state is WatchState.ARMED

    def test_remove_without_argument_clears(self, value_io, notifier: MockNotifier) -> None:
        watcher = Watcher(value_io, notifier)
        watcher.add(lambda err, value: None)
        watcher.add(lambda err, value: None)
        watcher.remove()
        assert watcher.callbacks == ()
        assert watcher.state is WatchState.IDLE

    def test_rearm_after_idle(self, value_io, notifier: MockNotifier) -> None:
        watcher = Watcher(value_io, notifier)
        cb = watcher.add(lambda err, value: None)
        watcher.remove(cb)
        watcher.add(cb)
        assert watcher.state is WatchState.ARMED
        assert len(notifier.registered) == 2

    def test_non_callable_rejected(self, value_io, notifier: MockNotifier) -> None:
        with pytest.raises(TypeError):
            Watcher(value_io, notifier).add(42)  # type: ignore[arg-type]


@pytest.mark.unit
class TestWatcherDispatch:
    def test_dispatch_in_registration_order(self, value_io, notifier, fake_sysfs) -> None:
        watcher = Watcher(value_io, notifier)
        calls: list[tuple] = []
        watcher.add(lambda err, value: calls.append(("a", err, value)))
        watcher.add(lambda err, value: calls.append(("b", err, value)))

        fake_sysfs.set_value(18, 1)
        notifier.simulate_ready(value_io.fileno())
        assert calls == [("a", None, 1), ("b", None, 1)]

    def test_duplicate_callbacks_both_fire(self, value_io, notifier) -> None:
        watcher = Watcher(value_io, notifier)
        calls: list[int] = []

        def cb(err, value):
            calls.append(value)

        watcher.add(cb)
        watcher.add(cb)
        notifier.simulate_ready(value_io.fileno())
        assert calls == [0, 0]

        watcher.remove(cb)
        notifier.simulate_ready(value_io.fileno())
        assert calls == [0, 0, 0]

    def test_n_events_n_calls(self, value_io, notifier, fake_sysfs) -> None:
        watcher = Watcher(value_io, notifier)
        seen: list[int] = []
        watcher.add(lambda err, value: seen.append(value))
        for bit in (1, 0, 1, 1, 0):
            fake_sysfs.set_value(18, bit)
            notifier.simulate_ready(value_io.fileno())
        assert seen == [1, 0, 1, 1, 0]

    def test_active_low_applied(self, value_io, notifier, fake_sysfs) -> None:
        value_io.active_low = True
        watcher = Watcher(value_io, notifier)
        seen: list[int] = []
        watcher.add(lambda err, value: seen.append(value))
        fake_sysfs.set_value(18, 1)
        notifier.simulate_ready(value_io.fileno())
        assert seen == [0]

    def test_read_error_dispatched_and_stays_armed(self, value_io, notifier, fake_sysfs) -> None:
        watcher = Watcher(value_io, notifier)
        seen: list[tuple] = []
        watcher.add(lambda err, value: seen.append((err, value)))

        (fake_sysfs.root / "gpio18" / "value").write_text("?\n")
        notifier.simulate_ready(value_io.fileno())
        assert isinstance(seen[0][0], GpioIOError)
        assert seen[0][1] is None
        assert watcher.state is WatchState.ARMED

        fake_sysfs.set_value(18, 1)
        notifier.simulate_ready(value_io.fileno())
        assert seen[1] == (None, 1)

    def test_raising_callback_does_not_block_others(self, value_io, notifier) -> None:
        watcher = Watcher(value_io, notifier)
        seen: list[int] = []

        def broken(err, value):
            raise RuntimeError("boom")

        watcher.add(broken)
        watcher.add(lambda err, value: seen.append(value))
        notifier.simulate_ready(value_io.fileno())
        assert seen == [0]

    def test_unwatch_during_dispatch_keeps_current_event(self, value_io, notifier) -> None:
        watcher = Watcher(value_io, notifier)
        seen: list[str] = []

        def first(err, value):
            seen.append("first")
            watcher.remove(second)

        def second(err, value):
            seen.append("second")

        watcher.add(first)
        watcher.add(second)
        notifier.simulate_ready(value_io.fileno())
        notifier.simulate_ready(value_io.fileno())
        assert seen == ["first", "second", "first"]


@pytest.mark.unit
class TestWatcherDebounce:
    async def test_events_coalesced(self, value_io, notifier, fake_sysfs) -> None:
        watcher = Watcher(value_io, notifier, debounce_timeout=0.02)
        seen: list[int] = []
        watcher.add(lambda err, value: seen.append(value))

        for bit in (1, 0, 1):
            fake_sysfs.set_value(18, bit)
            notifier.simulate_ready(value_io.fileno())
        assert seen == []

        await asyncio.sleep(0.06)
        assert seen == [1]

    async def test_disarm_cancels_pending_dispatch(self, value_io, notifier) -> None:
        watcher = Watcher(value_io, notifier, debounce_timeout=0.02)
        seen: list[int] = []
        watcher.add(lambda err, value: seen.append(value))
        notifier.simulate_ready(value_io.fileno())
        watcher.clear()

        await asyncio.sleep(0.05)
        assert seen == []

    def test_negative_timeout_rejected(self, value_io, notifier) -> None:
        with pytest.raises(ValueError):
            Watcher(value_io, notifier, debounce_timeout=-1)
