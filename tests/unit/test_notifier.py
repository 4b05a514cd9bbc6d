"""Unit tests — readiness notifiers (mock and epoll)."""

from __future__ import annotations

import asyncio
import os
import select
from unittest.mock import MagicMock

import pytest

from sysfs_gpio.notifier import EpollNotifier, MockNotifier

requires_epoll = pytest.mark.skipif(not hasattr(select, "epoll"), reason="epoll is Linux-only")


@pytest.mark.unit
class TestMockNotifier:
    def test_register_and_fire(self) -> None:
        notifier = MockNotifier()
        callback = MagicMock()
        subscription = notifier.register(7)
        subscription.on_ready(callback)

        assert notifier.simulate_ready(7) is True
        assert notifier.simulate_ready(7) is True
        assert callback.call_count == 2
        assert notifier.registered == [7]

    def test_cancel_stops_delivery(self) -> None:
        notifier = MockNotifier()
        callback = MagicMock()
        subscription = notifier.register(7)
        subscription.on_ready(callback)
        subscription.cancel()
        subscription.cancel()

        assert notifier.simulate_ready(7) is False
        callback.assert_not_called()
        assert notifier.cancelled == [7]
        assert notifier.active == []
        assert subscription.cancelled

    def test_double_registration_rejected(self) -> None:
        notifier = MockNotifier()
        notifier.register(3)
        with pytest.raises(ValueError):
            notifier.register(3)


@pytest.mark.unit
@requires_epoll
class TestEpollNotifier:
    async def test_wakes_loop_on_readiness(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            notifier = EpollNotifier(events=select.EPOLLIN | select.EPOLLET)
            subscription = notifier.register(read_fd)
            ready = asyncio.Event()
            subscription.on_ready(ready.set)

            os.write(write_fd, b"1")
            await asyncio.wait_for(ready.wait(), timeout=1.0)
            subscription.cancel()
            assert subscription.cancelled
        finally:
            os.close(read_fd)
            os.close(write_fd)

    async def test_cancel_stops_delivery(self) -> None:
        read_fd, write_fd = os.pipe()
        try:
            notifier = EpollNotifier(events=select.EPOLLIN | select.EPOLLET)
            subscription = notifier.register(read_fd)
            calls: list[int] = []
            subscription.on_ready(lambda: calls.append(1))
            subscription.cancel()

            os.write(write_fd, b"1")
            await asyncio.sleep(0.05)
            assert calls == []
        finally:
            os.close(read_fd)
            os.close(write_fd)

    async def test_regular_files_are_rejected(self, tmp_path) -> None:
        target = tmp_path / "value"
        target.write_text("0\n")
        fd = os.open(target, os.O_RDONLY)
        try:
            with pytest.raises(OSError):
                EpollNotifier().register(fd)
        finally:
            os.close(fd)
