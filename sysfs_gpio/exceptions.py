"""sysfs-gpio — Exception hierarchy.

All exceptions raised by the library inherit from GpioError so that callers
can catch the full family with a single except clause when needed.

Hierarchy:
    GpioError
    ├── ConstructionError
    │   └── ExportTimeoutError
    ├── ConfigurationError
    ├── GpioIOError
    ├── LifecycleError
    └── CallerError
"""

from __future__ import annotations

from typing import Any


class GpioError(Exception):
    """Base exception for all sysfs-gpio errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class ConstructionError(GpioError):
    """A Gpio could not be created (bad arguments, export or configure failure)."""


class ExportTimeoutError(ConstructionError):
    """The kernel did not materialise the pin's control files in time."""

    def __init__(self, pin: int, attempts: int, path: str) -> None:
        super().__init__(
            f"GPIO {pin} was not ready after {attempts} attempts (waiting for {path})",
            context={"pin": pin, "attempts": attempts, "path": path},
        )
        self.pin = pin
        self.attempts = attempts


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------


class ConfigurationError(GpioError):
    """The platform rejected a direction/edge write, or the control file is absent."""

    def __init__(self, pin: int, attribute: str, value: str, reason: str) -> None:
        super().__init__(
            f"Cannot set {attribute}={value!r} on GPIO {pin}: {reason}",
            context={"pin": pin, "attribute": attribute, "value": value, "reason": reason},
        )
        self.pin = pin
        self.attribute = attribute


class GpioIOError(GpioError):
    """Reading or writing the value file failed."""

    def __init__(self, pin: int, operation: str, reason: str) -> None:
        super().__init__(
            f"GPIO {pin} {operation} failed: {reason}",
            context={"pin": pin, "operation": operation, "reason": reason},
        )
        self.pin = pin
        self.operation = operation


class LifecycleError(GpioError):
    """An operation was invoked on a Gpio that is not exported."""

    def __init__(self, pin: int, operation: str, state: str) -> None:
        super().__init__(
            f"Cannot {operation} GPIO {pin}: state is {state}",
            context={"pin": pin, "operation": operation, "state": state},
        )
        self.pin = pin
        self.operation = operation


class CallerError(GpioError, ValueError):
    """The caller passed an invalid argument or used the pin the wrong way."""
