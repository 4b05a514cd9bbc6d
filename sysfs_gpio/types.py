"""sysfs-gpio — Shared type definitions.

The enum values are the exact strings the kernel expects in the ``direction``
and ``edge`` control files, so they can be written without translation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from sysfs_gpio.exceptions import CallerError

HIGH = 1
LOW = 0


class Direction(str, Enum):
    IN = "in"
    OUT = "out"


class Edge(str, Enum):
    NONE = "none"
    RISING = "rising"
    FALLING = "falling"
    BOTH = "both"


class GpioState(str, Enum):
    EXPORTED = "exported"
    UNEXPORTED = "unexported"


def parse_direction(value: Any) -> Direction:
    """Coerce *value* (enum or string, any case) to a :class:`Direction`.

    Raises ``ValueError`` for anything else; callers wrap it in the error
    type that fits their phase (construction vs. reconfiguration).
    """
    if isinstance(value, Direction):
        return value
    if isinstance(value, str):
        return Direction(value.strip().lower())
    raise ValueError(f"Invalid direction: {value!r}")


def parse_edge(value: Any) -> Edge:
    """Coerce *value* to an :class:`Edge`. ``None`` means ``Edge.NONE``."""
    if value is None:
        return Edge.NONE
    if isinstance(value, Edge):
        return value
    if isinstance(value, str):
        return Edge(value.strip().lower())
    raise ValueError(f"Invalid edge: {value!r}")


def validate_bit(value: Any) -> int:
    """Return *value* as 0 or 1, rejecting anything that is not exactly a bit."""
    # bool is an int subclass; True/False map to 1/0 unambiguously.
    if isinstance(value, int) and value in (0, 1):
        return int(value)
    raise CallerError(
        f"GPIO value must be 0 or 1, got {value!r}",
        context={"value": repr(value)},
    )


def invert(value: int, active_low: bool) -> int:
    return value ^ 1 if active_low else value
