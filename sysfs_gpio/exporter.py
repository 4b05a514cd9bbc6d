"""Export / unexport of a GPIO line through the sysfs control files.

Writing to ``export`` only asks the kernel to create ``gpio<N>/``; the
directory, and the ownership changes udev applies to it afterwards, appear
asynchronously.  :meth:`Exporter.export` therefore polls until the pin's
control files are present *and* accessible before returning.
"""

from __future__ import annotations

import errno
import os
import time
from typing import Callable

from sysfs_gpio.config import ExportPollConfig
from sysfs_gpio.exceptions import ConfigurationError, ConstructionError, ExportTimeoutError
from sysfs_gpio.logging import get_logger
from sysfs_gpio.paths import SysfsGpioPath, write_attribute

log = get_logger(__name__)


class Exporter:
    """Reserves and releases one pin."""

    def __init__(
        self,
        paths: SysfsGpioPath,
        poll: ExportPollConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._paths = paths
        self._poll = poll or ExportPollConfig()
        self._sleep = sleep

    @property
    def is_exported(self) -> bool:
        return self._paths.directory.is_dir()

    def export(self) -> bool:
        """Export the pin and wait for it to settle.

        Returns ``True`` when the pin was already exported before the call.
        """
        pin = self._paths.pin
        if self.is_exported:
            already_exported = True
        else:
            already_exported = False
            try:
                write_attribute(self._paths.export, str(pin))
            except OSError as exc:
                if exc.errno != errno.EBUSY:
                    raise ConstructionError(
                        f"Cannot export GPIO {pin}: {exc.strerror or exc}",
                        context={"pin": pin, "path": str(self._paths.export), "errno": exc.errno},
                    ) from exc
                already_exported = True
                log.debug("gpio_export_busy", pin=pin, errno=exc.errno)

        self._wait_until_ready()
        log.info("gpio_exported", pin=pin, already_exported=already_exported)
        return already_exported

    def unexport(self) -> None:
        pin = self._paths.pin
        if not self.is_exported:
            log.debug("gpio_unexport_skipped", pin=pin)
            return
        try:
            write_attribute(self._paths.unexport, str(pin))
        except OSError as exc:
            if exc.errno != errno.EINVAL:
                raise ConfigurationError(pin, "unexport", str(pin), exc.strerror or str(exc)) from exc
        log.info("gpio_unexported", pin=pin)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ready(self) -> bool:
        value = self._paths.value
        direction = self._paths.direction
        if not value.exists():
            return False
        # Inputs may expose a read-only value file; direction must be writable.
        if not os.access(value, os.R_OK):
            return False
        if direction.exists() and not os.access(direction, os.W_OK):
            return False
        return True

    def _wait_until_ready(self) -> None:
        attempts = self._poll.max_attempts
        for attempt in range(1, attempts + 1):
            if self._ready():
                return
            if attempt < attempts:
                self._sleep(self._poll.delay_for_attempt(attempt))
        raise ExportTimeoutError(self._paths.pin, attempts, str(self._paths.value))
