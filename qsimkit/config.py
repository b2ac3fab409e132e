"""Simulator configuration.

A :class:`SimulatorConfig` bundles the numerical tolerances and resource
limits used by the amplitude store, the gate applicator and the execution
engine. A process-wide default is built from ``QSIMKIT_*`` environment
variables and can be replaced globally or temporarily.
"""

from __future__ import annotations

import dataclasses
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Mapping, Optional

import torch

NORM_CHECK_MODES = ("ignore", "warn", "error")

_ENV_PREFIX = "QSIMKIT_"

_COMPLEX_DTYPES = {
    "complex64": torch.complex64,
    "complex128": torch.complex128,
}


@dataclass(frozen=True)
class SimulatorConfig:
    """
    Numerical tolerances and limits for a simulation.

    Attributes
    ----------
    atol:
        Allowed deviation of the total probability from 1 at checkpoints.
        With ``complex_dtype=torch.complex64`` this should be raised to
        about 1e-5.
    unitarity_atol:
        Element-wise tolerance on ``U†U - I`` for user-supplied matrices.
    zero_probability_atol:
        Outcomes with probability at or below this value cannot be
        collapsed onto.
    max_qubits:
        Largest register the amplitude store will allocate.
    norm_check:
        What to do when normalization drifts beyond ``atol``: "ignore",
        "warn" or "error".
    apply_workers:
        Number of threads used to process amplitude groups of a single
        gate application. 1 disables threading.
    apply_parallel_threshold:
        Minimum number of amplitude groups before threading kicks in.
    complex_dtype:
        Default dtype of amplitude vectors and gate matrices.
    """

    atol: float = 1e-9
    unitarity_atol: float = 1e-8
    zero_probability_atol: float = 1e-12
    max_qubits: int = 28
    norm_check: str = "warn"
    apply_workers: int = 1
    apply_parallel_threshold: int = 1 << 14
    complex_dtype: torch.dtype = torch.complex128

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.atol <= 0.0:
            raise ValueError(f"atol must be positive, got {self.atol}")
        if self.unitarity_atol <= 0.0:
            raise ValueError(
                f"unitarity_atol must be positive, got {self.unitarity_atol}"
            )
        if self.zero_probability_atol < 0.0:
            raise ValueError(
                "zero_probability_atol must be non-negative, "
                f"got {self.zero_probability_atol}"
            )
        if self.max_qubits < 1:
            raise ValueError(f"max_qubits must be >= 1, got {self.max_qubits}")
        if self.norm_check not in NORM_CHECK_MODES:
            raise ValueError(
                f"norm_check must be one of {NORM_CHECK_MODES}, "
                f"got {self.norm_check!r}"
            )
        if self.apply_workers < 1:
            raise ValueError(
                f"apply_workers must be >= 1, got {self.apply_workers}"
            )
        if self.apply_parallel_threshold < 1:
            raise ValueError(
                "apply_parallel_threshold must be >= 1, "
                f"got {self.apply_parallel_threshold}"
            )
        if self.complex_dtype not in (torch.complex64, torch.complex128):
            raise ValueError(
                f"complex_dtype must be complex64 or complex128, "
                f"got {self.complex_dtype}"
            )

    def replace(self, **overrides: object) -> "SimulatorConfig":
        """Return a copy of this config with some fields replaced."""
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "SimulatorConfig":
        """
        Build a config from ``QSIMKIT_*`` environment variables.

        Recognised variables: ``QSIMKIT_ATOL``, ``QSIMKIT_UNITARITY_ATOL``,
        ``QSIMKIT_MAX_QUBITS``, ``QSIMKIT_NORM_CHECK``,
        ``QSIMKIT_APPLY_WORKERS`` and ``QSIMKIT_DTYPE`` ("complex64" or
        "complex128"). Unset variables keep their defaults.
        """
        if environ is None:
            environ = os.environ

        kwargs: dict[str, object] = {}
        float_fields = {"ATOL": "atol", "UNITARITY_ATOL": "unitarity_atol"}
        int_fields = {
            "MAX_QUBITS": "max_qubits",
            "APPLY_WORKERS": "apply_workers",
        }
        for suffix, field in float_fields.items():
            raw = environ.get(_ENV_PREFIX + suffix)
            if raw is not None:
                kwargs[field] = float(raw)
        for suffix, field in int_fields.items():
            raw = environ.get(_ENV_PREFIX + suffix)
            if raw is not None:
                kwargs[field] = int(raw)

        norm_check = environ.get(_ENV_PREFIX + "NORM_CHECK")
        if norm_check is not None:
            kwargs["norm_check"] = norm_check.strip().lower()

        dtype_name = environ.get(_ENV_PREFIX + "DTYPE")
        if dtype_name is not None:
            key = dtype_name.strip().lower()
            if key not in _COMPLEX_DTYPES:
                raise ValueError(
                    f"{_ENV_PREFIX}DTYPE must be one of "
                    f"{sorted(_COMPLEX_DTYPES)}, got {dtype_name!r}"
                )
            kwargs["complex_dtype"] = _COMPLEX_DTYPES[key]

        return cls(**kwargs)


_config: SimulatorConfig = SimulatorConfig.from_env()


def get_config() -> SimulatorConfig:
    """Return the process-wide default configuration."""
    return _config


def set_config(config: SimulatorConfig) -> None:
    """Replace the process-wide default configuration."""
    global _config
    if not isinstance(config, SimulatorConfig):
        raise TypeError(
            f"config must be a SimulatorConfig, got {type(config).__name__}"
        )
    _config = config


@contextmanager
def config_context(**overrides: object) -> Iterator[SimulatorConfig]:
    """
    Temporarily override fields of the default configuration.

    Example
    -------
    >>> with config_context(norm_check="error", atol=1e-6) as cfg:
    ...     assert get_config() is cfg
    """
    global _config
    prev = _config
    _config = prev.replace(**overrides)
    try:
        yield _config
    finally:
        _config = prev


def resolve_config(config: Optional[SimulatorConfig]) -> SimulatorConfig:
    """Return ``config`` or the process-wide default if it is None."""
    return _config if config is None else config


__all__ = [
    "NORM_CHECK_MODES",
    "SimulatorConfig",
    "get_config",
    "set_config",
    "config_context",
    "resolve_config",
]
