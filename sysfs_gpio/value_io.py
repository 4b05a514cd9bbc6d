"""Reads and writes of a pin's ``value`` file.

sysfs attribute files are not streams: every access must start at offset 0,
and after a read the offset must be rewound again so that the next
edge-triggered notification is delivered.  The descriptor is opened lazily,
kept for the life of the pin and shared with the watcher.

Asynchronous variants run the blocking call on a single worker thread per
pin, so requests for one pin complete in submission order.  Open, seek,
read, write and close are serialised by a per-pin lock because they may be
issued from that worker and from the event loop thread.
"""

from __future__ import annotations

import asyncio
import errno
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable

from sysfs_gpio.exceptions import CallerError, GpioIOError, LifecycleError
from sysfs_gpio.logging import get_logger
from sysfs_gpio.paths import SysfsGpioPath
from sysfs_gpio.types import Direction, GpioState, invert, validate_bit

log = get_logger(__name__)

ReadCallback = Callable[[BaseException | None, int | None], Any]
WriteCallback = Callable[[BaseException | None], Any]

_PHYSICAL = {b"0": 0, b"1": 1}


class ValueIO:
    """Owns the value-file descriptor of one pin."""

    def __init__(
        self,
        paths: SysfsGpioPath,
        direction: Direction,
        active_low: bool = False,
    ) -> None:
        self._paths = paths
        self.direction = direction
        self.active_low = active_low
        self._fd: int | None = None
        self._closed = False
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def pin(self) -> int:
        return self._paths.pin

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Synchronous API
    # ------------------------------------------------------------------

    def read_sync(self) -> int:
        with self._lock:
            return invert(self._read_physical(), self.active_low)

    def write_sync(self, value: Any) -> None:
        bit = validate_bit(value)
        with self._lock:
            self._check_open("write")
            if self.direction is not Direction.OUT:
                raise CallerError(
                    f"GPIO {self.pin} is an input; it cannot be written",
                    context={"pin": self.pin, "direction": self.direction.value},
                )
            fd = self._ensure_fd("write")
            physical = invert(bit, self.active_low)
            try:
                os.lseek(fd, 0, os.SEEK_SET)
                os.write(fd, b"1" if physical else b"0")
            except OSError as exc:
                raise GpioIOError(self.pin, "write", exc.strerror or str(exc)) from exc

    def fileno(self) -> int:
        """Open the descriptor if needed and return it."""
        with self._lock:
            return self._ensure_fd("watch")

    def reset(self) -> None:
        """Drop the descriptor so the next access reopens it (after a direction change)."""
        with self._lock:
            self._release_fd()

    def close(self) -> None:
        """Close the descriptor and stop the worker; further I/O is a lifecycle error."""
        with self._lock:
            self._closed = True
            self._release_fd()
        if self._executor is not None:
            # Queued requests still run and fail with LifecycleError.
            self._executor.shutdown(wait=False)
            self._executor = None

    # ------------------------------------------------------------------
    # Asynchronous API
    # ------------------------------------------------------------------

    def submit(
        self,
        fn: Callable[[], Any],
        callback: Callable[..., Any] | None = None,
        with_value: bool = True,
        operation: str = "read",
    ) -> asyncio.Future[Any]:
        """Run *fn* on this pin's worker thread.

        Must be called from a running event loop; otherwise ``CallerError`` is
        raised immediately.  Errors raised by *fn* are delivered only through
        the returned future and *callback*.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise CallerError(
                f"Asynchronous {operation} on GPIO {self.pin} requires a running asyncio event loop; "
                f"use {operation}_sync() outside one",
                context={"pin": self.pin, "operation": operation},
            ) from exc
        if self._closed:
            future: asyncio.Future[Any] = loop.create_future()
            future.set_exception(LifecycleError(self.pin, operation, GpioState.UNEXPORTED.value))
        else:
            future = loop.run_in_executor(self._worker(), fn)
        if callback is not None:
            future.add_done_callback(partial(_deliver, callback, with_value))
        return future

    # ------------------------------------------------------------------
    # Internal helpers (call with self._lock held)
    # ------------------------------------------------------------------

    def _worker(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=f"gpio{self.pin}"
            )
        return self._executor

    def _check_open(self, operation: str) -> None:
        if self._closed:
            raise LifecycleError(self.pin, operation, GpioState.UNEXPORTED.value)

    def _ensure_fd(self, operation: str) -> int:
        self._check_open(operation)
        if self._fd is None:
            path = self._paths.value
            try:
                self._fd = os.open(path, os.O_RDWR)
            except PermissionError:
                # Inputs commonly expose a read-only value file.
                try:
                    self._fd = os.open(path, os.O_RDONLY)
                except OSError as exc:
                    raise GpioIOError(self.pin, "open", exc.strerror or str(exc)) from exc
            except OSError as exc:
                raise GpioIOError(self.pin, "open", exc.strerror or str(exc)) from exc
        return self._fd

    def _read_physical(self) -> int:
        fd = self._ensure_fd("read")
        try:
            os.lseek(fd, 0, os.SEEK_SET)
            raw = os.read(fd, 2)
            # Rewind so the next edge notification is armed.
            os.lseek(fd, 0, os.SEEK_SET)
        except OSError as exc:
            raise GpioIOError(self.pin, "read", exc.strerror or str(exc)) from exc
        value = _PHYSICAL.get(raw[:1])
        if value is None:
            raise GpioIOError(self.pin, "read", f"unexpected value {raw!r}")
        return value

    def _release_fd(self) -> None:
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            os.close(fd)
        except OSError as exc:
            if exc.errno != errno.EBADF:
                log.warning("value_fd_close_failed", pin=self.pin, errno=exc.errno, error=str(exc))


def _deliver(callback: Callable[..., Any], with_value: bool, future: asyncio.Future[Any]) -> None:
    """Invoke a node-style ``callback(error[, value])`` exactly once."""
    error: BaseException | None
    if future.cancelled():
        error = asyncio.CancelledError()
    else:
        error = future.exception()
    if with_value:
        callback(error, None if error is not None else future.result())
    else:
        callback(error)
