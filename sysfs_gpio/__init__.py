"""sysfs-gpio — GPIO access over the Linux sysfs GPIO interface.

Provides:
  - :class:`~sysfs_gpio.gpio.Gpio` — one exported pin: sync/async value I/O
    and edge watching
  - :class:`~sysfs_gpio.notifier.EpollNotifier` — edge-triggered epoll backend
  - :class:`~sysfs_gpio.notifier.MockNotifier` — deterministic test backend

Example usage::

    from sysfs_gpio import Gpio

    with Gpio(17, "out") as led:
        led.write_sync(1)
"""

from sysfs_gpio.exceptions import (
    CallerError,
    ConfigurationError,
    ConstructionError,
    ExportTimeoutError,
    GpioError,
    GpioIOError,
    LifecycleError,
)
from sysfs_gpio.gpio import Gpio
from sysfs_gpio.notifier import EpollNotifier, MockNotifier, ReadinessNotifier, Subscription
from sysfs_gpio.paths import SysfsGpioPath
from sysfs_gpio.types import HIGH, LOW, Direction, Edge, GpioState

__version__ = "0.1.0"

__all__ = [
    "Gpio",
    "Direction",
    "Edge",
    "GpioState",
    "HIGH",
    "LOW",
    "SysfsGpioPath",
    "ReadinessNotifier",
    "Subscription",
    "EpollNotifier",
    "MockNotifier",
    "GpioError",
    "ConstructionError",
    "ExportTimeoutError",
    "ConfigurationError",
    "GpioIOError",
    "LifecycleError",
    "CallerError",
]
