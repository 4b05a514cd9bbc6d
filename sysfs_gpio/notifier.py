"""Readiness notification — abstract interface and concrete implementations.

Architecture:
  - :class:`ReadinessNotifier` is the abstract contract the watcher talks to:
    ``register(fd) -> Subscription``, ``Subscription.on_ready(cb)``,
    ``Subscription.cancel()``.
  - :class:`EpollNotifier` registers the descriptor with its own
    edge-triggered ``select.epoll`` object and hands the epoll descriptor to
    the running asyncio loop with ``loop.add_reader``.  The loop wakes up only
    when the kernel signals a value change (``POLLPRI`` on sysfs value files);
    nothing polls the value file.
  - :class:`MockNotifier` is a fully deterministic in-memory implementation
    for tests and for machines without epoll.

Subscriptions are 1:1 with a descriptor and never shared across pins.
"""

from __future__ import annotations

import asyncio
import select
from abc import ABC, abstractmethod
from typing import Any, Callable

from sysfs_gpio.logging import get_logger

log = get_logger(__name__)

ReadyCallback = Callable[[], Any]


# ---------------------------------------------------------------------------
# Abstract interface
# ---------------------------------------------------------------------------


class Subscription(ABC):
    """One descriptor registered with a notifier."""

    def __init__(self, fd: int) -> None:
        self.fd = fd
        self._callbacks: list[ReadyCallback] = []
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def on_ready(self, callback: ReadyCallback) -> None:
        self._callbacks.append(callback)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._callbacks.clear()
        self._release()

    def _notify(self) -> None:
        for callback in list(self._callbacks):
            if self._cancelled:
                return
            callback()

    @abstractmethod
    def _release(self) -> None:
        """Deregister from the underlying facility."""


class ReadinessNotifier(ABC):
    @abstractmethod
    def register(self, fd: int) -> Subscription:
        """Start watching *fd* for readiness events."""


# ---------------------------------------------------------------------------
# epoll implementation
# ---------------------------------------------------------------------------


class EpollSubscription(Subscription):
    def __init__(self, fd: int, events: int, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(fd)
        self._loop = loop
        self._epoll = select.epoll()
        try:
            self._epoll.register(fd, events)
            loop.add_reader(self._epoll.fileno(), self._drain)
        except Exception:
            self._epoll.close()
            raise

    def _drain(self) -> None:
        try:
            events = self._epoll.poll(0)
        except InterruptedError:
            return
        except OSError as exc:
            log.warning("epoll_poll_failed", fd=self.fd, errno=exc.errno, error=str(exc))
            return
        for _fd, _mask in events:
            if self._cancelled:
                return
            self._notify()

    def _release(self) -> None:
        try:
            self._loop.remove_reader(self._epoll.fileno())
        finally:
            self._epoll.close()


class EpollNotifier(ReadinessNotifier):
    """Edge-triggered epoll bound to the running asyncio loop.

    The default event mask suits sysfs value files; tests may pass another
    mask (e.g. ``EPOLLIN | EPOLLET`` for a pipe).
    """

    def __init__(self, events: int | None = None, loop: asyncio.AbstractEventLoop | None = None) -> None:
        if events is None and hasattr(select, "epoll"):
            events = select.EPOLLPRI | select.EPOLLERR | select.EPOLLET
        self._events = events
        self._loop = loop

    def register(self, fd: int) -> Subscription:
        if self._events is None:
            raise OSError("select.epoll is not available on this platform")
        loop = self._loop or asyncio.get_running_loop()
        return EpollSubscription(fd, self._events, loop)


# ---------------------------------------------------------------------------
# Mock implementation (tests + non-Linux environments)
# ---------------------------------------------------------------------------


class MockSubscription(Subscription):
    def __init__(self, fd: int, owner: "MockNotifier") -> None:
        super().__init__(fd)
        self._owner = owner

    def _release(self) -> None:
        self._owner.cancelled.append(self.fd)
        self._owner.subscriptions.pop(self.fd, None)


class MockNotifier(ReadinessNotifier):
    """Deterministic notifier for tests.

    Usage::

        notifier = MockNotifier()
        gpio = Gpio(18, "in", "both", notifier=notifier)
        gpio.watch(callback)
        notifier.simulate_ready(gpio.fileno())   # callbacks run synchronously
    """

    def __init__(self) -> None:
        self.subscriptions: dict[int, MockSubscription] = {}
        self.registered: list[int] = []
        self.cancelled: list[int] = []

    def register(self, fd: int) -> Subscription:
        if fd in self.subscriptions:
            raise ValueError(f"fd {fd} is already registered")
        subscription = MockSubscription(fd, self)
        self.subscriptions[fd] = subscription
        self.registered.append(fd)
        return subscription

    def simulate_ready(self, fd: int) -> bool:
        """Fire a readiness event on *fd*. Returns False if nothing is registered."""
        subscription = self.subscriptions.get(fd)
        if subscription is None:
            return False
        subscription._notify()
        return True

    @property
    def active(self) -> list[int]:
        return list(self.subscriptions)
