"""Path resolution for the sysfs GPIO control tree.

Layout consumed::

    <root>/export
    <root>/unexport
    <root>/gpio<N>/direction
    <root>/gpio<N>/edge
    <root>/gpio<N>/value
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from sysfs_gpio.exceptions import ConstructionError

DEFAULT_SYSFS_ROOT = Path("/sys/class/gpio")


def validate_pin(pin: object) -> int:
    # bool is an int subclass but never a meaningful pin number.
    if isinstance(pin, bool) or not isinstance(pin, int) or pin < 0:
        raise ConstructionError(
            f"GPIO pin must be a non-negative integer, got {pin!r}",
            context={"pin": repr(pin)},
        )
    return pin


@dataclass(frozen=True)
class SysfsGpioPath:
    """Control-file paths for one pin. Pure; never touches the filesystem."""

    pin: int
    root: Path = field(default=DEFAULT_SYSFS_ROOT)

    def __post_init__(self) -> None:
        validate_pin(self.pin)
        object.__setattr__(self, "root", Path(self.root))

    @property
    def export(self) -> Path:
        return self.root / "export"

    @property
    def unexport(self) -> Path:
        return self.root / "unexport"

    @property
    def directory(self) -> Path:
        return self.root / f"gpio{self.pin}"

    @property
    def direction(self) -> Path:
        return self.directory / "direction"

    @property
    def edge(self) -> Path:
        return self.directory / "edge"

    @property
    def value(self) -> Path:
        return self.directory / "value"


def write_attribute(path: Path, text: str) -> None:
    """Write *text* to a sysfs attribute file in one unbuffered write."""
    fd = os.open(path, os.O_WRONLY | os.O_TRUNC)
    try:
        os.write(fd, text.encode("ascii"))
    finally:
        os.close(fd)


def read_attribute(path: Path) -> str:
    with open(path) as f:
        return f.read().strip()
