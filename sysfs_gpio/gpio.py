"""Gpio — one exported kernel GPIO line.

Lifecycle::

    Gpio(...)  --export + configure-->  EXPORTED  --unexport()-->  UNEXPORTED

Construction validates its arguments before touching the filesystem, then
exports the pin, writes ``direction`` and (for inputs) ``edge``.  If a
later step fails and this object performed the export, the pin is
unexported again before the error propagates.  A pin that was already
exported by someone else is left exported.

``unexport()`` is the only way to release the pin.  There is no finalizer:
a pin that is never unexported stays reserved after the process exits.

Example::

    import asyncio

    from sysfs_gpio import Gpio

    async def main():
        led = Gpio(17, "out")
        button = Gpio(4, "in", "both", debounce_timeout=0.01)

        def on_press(err, value):
            if err is None:
                led.write_sync(value)

        # Edge notifications are delivered by the running event loop.
        button.watch(on_press)
        try:
            await asyncio.sleep(60)
        finally:
            button.unexport()
            led.unexport()

    asyncio.run(main())
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

from sysfs_gpio.config import Settings, get_settings
from sysfs_gpio.configurator import Configurator
from sysfs_gpio.exceptions import (
    CallerError,
    ConfigurationError,
    ConstructionError,
    GpioError,
    LifecycleError,
)
from sysfs_gpio.exporter import Exporter
from sysfs_gpio.logging import get_logger
from sysfs_gpio.notifier import EpollNotifier, ReadinessNotifier
from sysfs_gpio.paths import SysfsGpioPath, validate_pin
from sysfs_gpio.types import Direction, Edge, GpioState, parse_direction, parse_edge
from sysfs_gpio.value_io import ReadCallback, ValueIO, WriteCallback
from sysfs_gpio.watcher import WatchCallback, Watcher

log = get_logger(__name__)


class Gpio:
    """A GPIO line exported through sysfs."""

    def __init__(
        self,
        pin: int,
        direction: Direction | str,
        edge: Edge | str | None = Edge.NONE,
        *,
        active_low: bool = False,
        debounce_timeout: float = 0.0,
        reconfigure_direction: bool = True,
        settings: Settings | None = None,
        notifier: ReadinessNotifier | None = None,
    ) -> None:
        pin = validate_pin(pin)
        try:
            parsed_direction = parse_direction(direction)
        except ValueError as exc:
            raise ConstructionError(
                f"Invalid direction {direction!r} for GPIO {pin}; expected 'in' or 'out'",
                context={"pin": pin, "direction": repr(direction)},
            ) from exc
        try:
            parsed_edge = parse_edge(edge)
        except ValueError as exc:
            raise ConstructionError(
                f"Invalid edge {edge!r} for GPIO {pin}",
                context={"pin": pin, "edge": repr(edge)},
            ) from exc
        if parsed_direction is Direction.OUT and parsed_edge is not Edge.NONE:
            raise ConstructionError(
                f"GPIO {pin}: edge {parsed_edge.value!r} requires direction 'in'",
                context={"pin": pin, "direction": "out", "edge": parsed_edge.value},
            )
        if not isinstance(active_low, bool):
            raise ConstructionError(
                "active_low must be a bool", context={"pin": pin, "active_low": repr(active_low)}
            )
        if debounce_timeout < 0:
            raise ConstructionError(
                "debounce_timeout must be >= 0",
                context={"pin": pin, "debounce_timeout": debounce_timeout},
            )

        settings = settings or get_settings()
        self._pin = pin
        self._direction = parsed_direction
        self._edge = parsed_edge
        self._active_low = active_low
        self._state: GpioState | None = None
        self._paths = SysfsGpioPath(pin, settings.sysfs.root)
        self._exporter = Exporter(self._paths, settings.export_poll)
        self._configurator = Configurator(self._paths)
        self._io = ValueIO(self._paths, parsed_direction, active_low)
        self._watcher = Watcher(self._io, notifier or EpollNotifier(), debounce_timeout)

        owns_export = not self._exporter.is_exported
        try:
            already_exported = self._exporter.export()
            owns_export = not already_exported
            self._configure(already_exported, reconfigure_direction)
        except ConstructionError:
            self._abort_construction(owns_export)
            raise
        except GpioError as exc:
            self._abort_construction(owns_export)
            raise ConstructionError(
                f"Cannot configure GPIO {pin}: {exc.message}", context=exc.context
            ) from exc
        except BaseException:
            self._abort_construction(owns_export)
            raise

        self._state = GpioState.EXPORTED
        log.info(
            "gpio_ready",
            pin=pin,
            direction=parsed_direction.value,
            edge=parsed_edge.value,
            active_low=active_low,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def pin(self) -> int:
        return self._pin

    @property
    def state(self) -> GpioState:
        return self._state or GpioState.UNEXPORTED

    def direction(self) -> Direction:
        self._check_exported("get direction of")
        return self._direction

    def edge(self) -> Edge:
        self._check_exported("get edge of")
        return self._edge

    def active_low(self) -> bool:
        self._check_exported("get active_low of")
        return self._active_low

    def fileno(self) -> int:
        """Descriptor of the value file (opened on demand)."""
        self._check_exported("get descriptor of")
        return self._io.fileno()

    @classmethod
    def accessible(cls, settings: Settings | None = None) -> bool:
        """True when the sysfs GPIO interface exists and this process may export pins."""
        root = (settings or get_settings()).sysfs.root
        export = root / "export"
        return export.exists() and os.access(export, os.W_OK)

    # ------------------------------------------------------------------
    # Value I/O
    # ------------------------------------------------------------------

    def read_sync(self) -> int:
        self._check_exported("read")
        return self._io.read_sync()

    def write_sync(self, value: int) -> None:
        self._check_exported("write")
        self._io.write_sync(value)

    def read(self, callback: ReadCallback | None = None) -> asyncio.Future[int]:
        """Read without blocking the event loop.

        Returns a future resolving to 0 or 1.  When *callback* is given it is
        called once as ``callback(error, value)``.  Must be called from a
        running event loop (``CallerError`` otherwise); every other error,
        including :class:`LifecycleError`, is delivered through the future.
        """
        return self._io.submit(self.read_sync, callback=callback, with_value=True)

    def write(self, value: int, callback: WriteCallback | None = None) -> asyncio.Future[None]:
        """Write without blocking the event loop; *callback* gets ``(error)``.

        Same loop requirement and error delivery as :meth:`read`.
        """
        return self._io.submit(
            lambda: self.write_sync(value), callback=callback, with_value=False, operation="write"
        )

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def watch(self, callback: WatchCallback) -> WatchCallback:
        """Call ``callback(error, value)`` on every qualifying edge.

        Returns *callback*, which is also the handle for :meth:`unwatch`.
        """
        self._check_exported("watch")
        if self._edge is Edge.NONE:
            raise CallerError(
                f"GPIO {self._pin} has edge 'none'; configure an edge before watching",
                context={"pin": self._pin},
            )
        return self._watcher.add(callback)

    def unwatch(self, callback: WatchCallback | None = None) -> None:
        self._check_exported("unwatch")
        self._watcher.remove(callback)

    def unwatch_all(self) -> None:
        self._check_exported("unwatch")
        self._watcher.clear()

    # ------------------------------------------------------------------
    # Reconfiguration
    # ------------------------------------------------------------------

    def set_direction(self, direction: Direction | str) -> None:
        self._check_exported("set direction of")
        try:
            new_direction = parse_direction(direction)
        except ValueError as exc:
            raise CallerError(str(exc), context={"pin": self._pin}) from exc
        if new_direction is Direction.OUT and self._edge is not Edge.NONE:
            self._watcher.clear()
            self._configurator.set_edge(Edge.NONE)
            self._edge = Edge.NONE
        self._configurator.set_direction(new_direction)
        if new_direction is self._direction:
            return
        self._direction = new_direction
        self._io.direction = new_direction
        # Reopen with the access mode the new direction needs.
        self._io.reset()

    def set_edge(self, edge: Edge | str) -> None:
        self._check_exported("set edge of")
        try:
            new_edge = parse_edge(edge)
        except ValueError as exc:
            raise CallerError(str(exc), context={"pin": self._pin}) from exc
        if self._direction is not Direction.IN:
            raise ConfigurationError(self._pin, "edge", new_edge.value, "pin is not an input")
        if new_edge is Edge.NONE:
            self._watcher.clear()
        self._configurator.set_edge(new_edge)
        self._edge = new_edge

    def set_active_low(self, invert: bool) -> None:
        self._check_exported("set active_low of")
        if not isinstance(invert, bool):
            raise CallerError("active_low must be a bool", context={"pin": self._pin})
        self._active_low = invert
        self._io.active_low = invert

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def unexport(self) -> None:
        """Release watchers, the value descriptor and the kernel reservation.

        Idempotent.  If the final unexport write fails the object is still
        UNEXPORTED and its descriptors are closed; the error is then raised.
        """
        if self._state is not GpioState.EXPORTED:
            return
        self._state = GpioState.UNEXPORTED
        try:
            self._watcher.clear()
        finally:
            self._io.close()
            try:
                self._exporter.unexport()
            except GpioError as exc:
                log.error("gpio_unexport_failed", pin=self._pin, error=str(exc))
                raise

    def __enter__(self) -> "Gpio":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.unexport()

    def __repr__(self) -> str:
        return (
            f"Gpio(pin={self._pin}, direction={self._direction.value!r}, "
            f"edge={self._edge.value!r}, active_low={self._active_low}, state={self.state.value!r})"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _configure(self, already_exported: bool, reconfigure_direction: bool) -> None:
        if not reconfigure_direction and already_exported:
            current = self._configurator.read_direction()
            if current is not self._direction:
                self._configurator.set_direction(self._direction)
        else:
            self._configurator.set_direction(self._direction)
        if self._direction is Direction.IN:
            if self._edge is not Edge.NONE or self._configurator.supports_edge:
                self._configurator.set_edge(self._edge)

    def _abort_construction(self, owns_export: bool) -> None:
        self._io.close()
        if not owns_export:
            log.debug("gpio_construction_left_exported", pin=self._pin)
            return
        try:
            self._exporter.unexport()
        except GpioError as exc:
            log.warning("gpio_construction_cleanup_failed", pin=self._pin, error=str(exc))

    def _check_exported(self, operation: str) -> None:
        if self._state is not GpioState.EXPORTED:
            raise LifecycleError(self._pin, operation, self.state.value)

