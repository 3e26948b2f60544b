"""structlog-backed logger used across the catalog.

Calls take a message plus an optional ``data`` mapping, e.g.
``logger.warning("Failed to parse manifest", data={"path": path})``.
Records flow through the stdlib ``skill_catalog`` logger, so level filtering
and handlers are configured there by ``configure_logging``.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Mapping

_ROOT_LOGGER_NAME = "skill_catalog"
_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class Logger:
    """Thin adapter keeping the ``message, data=...`` call shape over structlog."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)

    def _log(self, method: str, message: str, data: Mapping[str, Any] | None) -> None:
        if data:
            getattr(self._logger, method)(message, data=dict(data))
        else:
            getattr(self._logger, method)(message)

    def debug(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log("debug", message, data)

    def info(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log("info", message, data)

    def warning(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log("warning", message, data)

    def error(self, message: str, data: Mapping[str, Any] | None = None) -> None:
        self._log("error", message, data)


def get_logger(name: str) -> Logger:
    # respect a host application that configured structlog itself
    if not structlog.is_configured():
        _configure_structlog()
    return Logger(name)


def configure_logging(level: str = "WARNING", fmt: str = "console", *, stream: Any = None) -> None:
    """Route catalog logs to ``stream`` (stderr by default).

    ``fmt`` is ``"console"`` for human-readable lines or ``"json"`` for one
    JSON object per record.
    """
    level_upper = level.upper()
    if level_upper not in _VALID_LEVELS:
        msg = f"Invalid log level: {level!r}. Must be one of {sorted(_VALID_LEVELS)}"
        raise ValueError(msg)

    renderer: structlog.types.Processor
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    _configure_structlog()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    package_logger = logging.getLogger(_ROOT_LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level_upper))
