"""Diagnostics and debugging utilities for qsimkit."""

from .core import (
    assert_normalized,
    check_normalization,
    fidelity,
    state_norm,
    total_probability,
)
from .debug_mode import (
    debug_atol,
    debug_context,
    is_debug_enabled,
    set_debug_enabled,
)

__all__ = [
    "total_probability",
    "state_norm",
    "assert_normalized",
    "check_normalization",
    "fidelity",
    "is_debug_enabled",
    "set_debug_enabled",
    "debug_context",
    "debug_atol",
]
