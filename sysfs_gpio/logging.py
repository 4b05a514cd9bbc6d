"""sysfs-gpio — Structured logging configuration.

Uses structlog for structured, levelled logging with consistent key names.
The library only emits events; applications call :func:`configure_logging`
once at startup if they want them rendered.  All entries include:
    - timestamp (ISO-8601)
    - level
    - logger name
    - ``gpio`` (the sysfs directory name, e.g. ``gpio17``) when a ``pin`` is logged
    - ``errno_name`` (e.g. ``EBUSY``) when an ``errno`` is logged
"""

from __future__ import annotations

import errno
import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def _add_gpio_name(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Label records carrying a pin number with the pin's sysfs directory name."""
    pin = event_dict.get("pin")
    if isinstance(pin, int) and not isinstance(pin, bool):
        event_dict.setdefault("gpio", f"gpio{pin}")
    return event_dict


def _add_errno_name(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Translate a numeric ``errno`` field (EBUSY on export, EINVAL on unexport...)."""
    code = event_dict.get("errno")
    if isinstance(code, int) and code in errno.errorcode:
        event_dict.setdefault("errno_name", errno.errorcode[code])
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_gpio_name,
        _add_errno_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | Path | None = None,
) -> None:
    """Configure structlog and stdlib logging.

    Args:
        level:    One of debug, info, warning, error, critical.
        format:   ``"console"`` for human-readable output, ``"json"`` for
                  machine-readable structured logs.
        log_file: Optional path to write logs to in addition to stdout.
    """
    shared = _shared_processors()

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level.upper())

    # The epoll reader is registered on the loop; keep asyncio's debug chatter out.
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def configure_from_settings(settings: Any) -> None:
    """Apply the ``logging`` block of a :class:`~sysfs_gpio.config.Settings`."""
    cfg = settings.logging
    configure_logging(level=cfg.level, format=cfg.format, log_file=cfg.file)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*.

    Usage::

        log = get_logger(__name__)
        log.info("gpio_exported", pin=17, already_exported=False)
    """
    return structlog.get_logger(name)
