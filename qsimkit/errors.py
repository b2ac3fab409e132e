"""Exception types raised by the simulator.

Validation failures that happen while building registers, gates or
circuits derive from ``ValueError`` as well as :class:`QsimkitError`, so
callers that catch ``ValueError`` keep working. Failures that can only
occur while executing a validated circuit derive from ``RuntimeError``.
"""

from __future__ import annotations


class QsimkitError(Exception):
    """Base class for all simulator errors."""


class InvalidSizeError(QsimkitError, ValueError):
    """Register size is zero, negative, or beyond the configured capacity."""


class IndexOutOfRangeError(QsimkitError, ValueError):
    """A qubit, classical slot or basis index lies outside its register."""


class InvalidTargetError(QsimkitError, ValueError):
    """A target list is empty or names the same qubit more than once."""


class ArityMismatchError(QsimkitError, ValueError):
    """The number of targets does not match the arity of the gate."""


class NonUnitaryGateError(QsimkitError, ValueError):
    """A user-supplied gate matrix is not unitary within tolerance."""


class ZeroProbabilityOutcomeError(QsimkitError, RuntimeError):
    """Collapse was requested onto an outcome with (near) zero probability."""


class NormalizationDriftError(QsimkitError, RuntimeError):
    """Total probability deviates from one beyond the configured tolerance."""


class NormalizationDriftWarning(UserWarning):
    """Warning variant of :class:`NormalizationDriftError`."""


__all__ = [
    "QsimkitError",
    "InvalidSizeError",
    "IndexOutOfRangeError",
    "InvalidTargetError",
    "ArityMismatchError",
    "NonUnitaryGateError",
    "ZeroProbabilityOutcomeError",
    "NormalizationDriftError",
    "NormalizationDriftWarning",
]
