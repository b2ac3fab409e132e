"""Logging utilities for qsimkit.

All simulator loggers live under the ``qsimkit`` namespace and hand their
records to the package logger, which owns the single stream handler. The
initial level comes from ``QSIMKIT_LOG_LEVEL`` (default WARNING).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, TextIO

_PACKAGE = "qsimkit"
_LEVEL_ENV_VAR = "QSIMKIT_LOG_LEVEL"
_DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown logging level {level!r}")
        return resolved
    return int(level)


def _install_handler(
    package_logger: logging.Logger,
    stream: TextIO,
    format_string: str,
) -> None:
    global _handler
    if _handler is not None:
        package_logger.removeHandler(_handler)
    _handler = logging.StreamHandler(stream)
    _handler.setFormatter(logging.Formatter(format_string))
    package_logger.addHandler(_handler)


def _package_logger() -> logging.Logger:
    package_logger = logging.getLogger(_PACKAGE)
    if _handler is None:
        package_logger.setLevel(
            _resolve_level(os.environ.get(_LEVEL_ENV_VAR, "WARNING"))
        )
        package_logger.propagate = False
        _install_handler(package_logger, sys.stderr, _DEFAULT_FORMAT)
    return package_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the logger for ``name`` inside the qsimkit namespace.

    Args:
        name: Usually ``__name__`` of the calling module. Names outside the
            package are prefixed with ``qsimkit.``; None gives the package
            logger itself.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.debug("applying gate")
    """
    package_logger = _package_logger()
    if name is None or name == _PACKAGE:
        return package_logger
    if not name.startswith(_PACKAGE + "."):
        name = f"{_PACKAGE}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int | str) -> None:
    """Set the level of the package logger.

    Module loggers inherit it unless a level was set on them directly.

    Args:
        level: Numeric level or its name ('DEBUG', 'INFO', ...).
    """
    _package_logger().setLevel(_resolve_level(level))


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Replace the package handler and set the package level.

    Args:
        level: Logging level (default: WARNING).
        format_string: Record format. Defaults to ``[LEVEL] name: message``.
        stream: Output stream (default: sys.stderr).
    """
    package_logger = _package_logger()
    package_logger.setLevel(_resolve_level(level))
    _install_handler(
        package_logger,
        sys.stderr if stream is None else stream,
        _DEFAULT_FORMAT if format_string is None else format_string,
    )


__all__ = ["get_logger", "set_log_level", "configure_logging"]
