"""Watcher — interrupt-style edge notification for one pin.

State machine (per pin)::

    IDLE  --first add()-->  ARMED  --last remove() / clear()-->  IDLE

While ARMED the value descriptor is registered with a
:class:`~sysfs_gpio.notifier.ReadinessNotifier`.  Every readiness event
re-reads the value (rewinding before and after, see
:mod:`sysfs_gpio.value_io`) and calls each registered callback, in
registration order, as ``callback(None, value)``.  A failed read is
delivered as ``callback(error, None)`` and the watch stays armed.

Callbacks are not deduplicated: registering the same callable twice yields
two calls per event, and ``remove(cb)`` drops one registration.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Callable

from sysfs_gpio.exceptions import CallerError, GpioError, GpioIOError
from sysfs_gpio.logging import get_logger
from sysfs_gpio.notifier import ReadinessNotifier, Subscription
from sysfs_gpio.value_io import ValueIO

log = get_logger(__name__)

WatchCallback = Callable[[BaseException | None, int | None], Any]


class WatchState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"


class Watcher:
    def __init__(
        self,
        io: ValueIO,
        notifier: ReadinessNotifier,
        debounce_timeout: float = 0.0,
    ) -> None:
        if debounce_timeout < 0:
            raise ValueError("debounce_timeout must be >= 0")
        self._io = io
        self._notifier = notifier
        self._debounce_timeout = debounce_timeout
        self._callbacks: list[WatchCallback] = []
        self._subscription: Subscription | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None

    @property
    def state(self) -> WatchState:
        return WatchState.ARMED if self._subscription is not None else WatchState.IDLE

    @property
    def callbacks(self) -> tuple[WatchCallback, ...]:
        return tuple(self._callbacks)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add(self, callback: WatchCallback) -> WatchCallback:
        if not callable(callback):
            raise TypeError("watch callback must be callable")
        if self._subscription is None:
            self._arm()
        self._callbacks.append(callback)
        return callback

    def remove(self, callback: WatchCallback | None = None) -> None:
        """Remove one registration of *callback*, or all of them when omitted."""
        if callback is None:
            self.clear()
            return
        try:
            self._callbacks.remove(callback)
        except ValueError:
            return
        if not self._callbacks:
            self._disarm()

    def clear(self) -> None:
        self._callbacks.clear()
        self._disarm()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _arm(self) -> None:
        fd = self._io.fileno()
        # sysfs reports the current state as pending right after open;
        # consume it so the first notification is a real edge.
        self._io.read_sync()
        try:
            subscription = self._notifier.register(fd)
        except OSError as exc:
            raise GpioIOError(self._io.pin, "watch", exc.strerror or str(exc)) from exc
        except RuntimeError as exc:
            # asyncio.get_running_loop() outside a loop.
            raise CallerError(
                f"Watching GPIO {self._io.pin} requires a running asyncio event loop",
                context={"pin": self._io.pin},
            ) from exc
        subscription.on_ready(self._on_ready)
        self._subscription = subscription
        log.debug("watch_armed", pin=self._io.pin, fd=fd)

    def _disarm(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        if self._subscription is None:
            return
        subscription, self._subscription = self._subscription, None
        subscription.cancel()
        log.debug("watch_disarmed", pin=self._io.pin)

    def _on_ready(self) -> None:
        if self._debounce_timeout <= 0:
            self._dispatch()
            return
        if self._debounce_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self._debounce_timeout, self._debounced)

    def _debounced(self) -> None:
        self._debounce_handle = None
        if self._subscription is not None:
            self._dispatch()

    def _dispatch(self) -> None:
        callbacks = list(self._callbacks)
        try:
            value = self._io.read_sync()
        except GpioError as exc:
            log.warning("watch_dispatch_error", pin=self._io.pin, error=str(exc))
            for callback in callbacks:
                self._invoke(callback, exc, None)
            return
        for callback in callbacks:
            self._invoke(callback, None, value)

    def _invoke(self, callback: WatchCallback, error: BaseException | None, value: int | None) -> None:
        """Call one watcher. Errors are caught and logged."""
        try:
            callback(error, value)
        except Exception as exc:
            log.error("watch_callback_error", pin=self._io.pin, error=str(exc))
