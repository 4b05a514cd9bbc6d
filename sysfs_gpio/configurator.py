"""Direction and edge configuration for an exported pin."""

from __future__ import annotations

from pathlib import Path

from sysfs_gpio.exceptions import ConfigurationError
from sysfs_gpio.logging import get_logger
from sysfs_gpio.paths import SysfsGpioPath, read_attribute, write_attribute
from sysfs_gpio.types import Direction, Edge

log = get_logger(__name__)


class Configurator:
    def __init__(self, paths: SysfsGpioPath) -> None:
        self._paths = paths

    def set_direction(self, direction: Direction) -> None:
        self._write(self._paths.direction, "direction", direction.value)

    def set_edge(self, edge: Edge) -> None:
        self._write(self._paths.edge, "edge", edge.value)

    def read_direction(self) -> Direction:
        path = self._paths.direction
        try:
            raw = read_attribute(path)
        except OSError as exc:
            raise ConfigurationError(
                self._paths.pin, "direction", "?", exc.strerror or str(exc)
            ) from exc
        # The kernel reports "out" for pins configured with "high"/"low".
        return Direction.IN if raw == "in" else Direction.OUT

    @property
    def supports_edge(self) -> bool:
        return self._paths.edge.exists()

    def _write(self, path: Path, attribute: str, text: str) -> None:
        pin = self._paths.pin
        if not path.exists():
            raise ConfigurationError(
                pin, attribute, text, f"{path} does not exist (not exported or unsupported)"
            )
        try:
            write_attribute(path, text)
        except OSError as exc:
            raise ConfigurationError(pin, attribute, text, exc.strerror or str(exc)) from exc
        log.debug("gpio_configured", pin=pin, attribute=attribute, value=text)
