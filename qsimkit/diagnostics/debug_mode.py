"""Debug mode: a normalization assertion after every gate application.

Meant for chasing numerical problems in long circuits; it costs one extra
pass over the amplitudes per gate. ``QSIMKIT_DEBUG`` switches it on at
import time and ``QSIMKIT_DEBUG_ATOL`` sets the asserted tolerance.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Optional

_TRUTHY = ("1", "true", "yes", "on")

_debug_enabled: bool = os.getenv("QSIMKIT_DEBUG", "0").strip().lower() in _TRUTHY
_debug_atol: float = float(os.getenv("QSIMKIT_DEBUG_ATOL", "1e-5"))


def is_debug_enabled() -> bool:
    return _debug_enabled


def debug_atol() -> float:
    """Tolerance on the total probability checked after each gate."""
    return _debug_atol


def set_debug_enabled(enabled: bool, atol: Optional[float] = None) -> None:
    """
    Globally enable or disable debug mode.

    Parameters
    ----------
    enabled:
        Whether gate applications assert normalization.
    atol:
        New tolerance for the assertion; unchanged if None.
    """
    global _debug_enabled, _debug_atol
    if atol is not None:
        if atol <= 0.0:
            raise ValueError(f"debug atol must be positive, got {atol}")
        _debug_atol = float(atol)
    _debug_enabled = bool(enabled)


@contextmanager
def debug_context(enabled: bool = True, atol: Optional[float] = None) -> Iterator[None]:
    """
    Temporarily switch debug mode (and optionally its tolerance).

    Example
    -------
    >>> with debug_context(True, atol=1e-10):
    ...     pass  # every gate application now checks normalization
    """
    prev = (_debug_enabled, _debug_atol)
    set_debug_enabled(enabled, atol)
    try:
        yield
    finally:
        set_debug_enabled(*prev)
